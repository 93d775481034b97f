class ConfigurationError(Exception):
    """The form settings could not be loaded."""


class FormValidationError(Exception):

    def __init__(self, errors):
        message = ' '.join(errors)
        super(FormValidationError, self).__init__(message)
        self.errors = errors
        self.message = message

#!/usr/bin/env python
import json
import logging
import sys

from optparse import OptionParser

from membership.application.exceptions import ConfigurationError
from membership.application.submission import create_submitter
from membership.config import FormSettings

if __name__ == '__main__':
    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    logging.basicConfig(format=format, stream=sys.stdout, level=logging.INFO)

    parser = OptionParser()
    parser.add_option("-f", "--form", dest="form",
                      help="JSON file with the ev_ prefixed form fields to submit (Required)", metavar="FILE")
    parser.add_option("-c", "--config", dest="config",
                      help="YAML settings file (Optional, defaults to EV_* environment variables)", metavar="FILE")
    parser.add_option("-l", "--log", help="the logging level", default='INFO')

    (options, args) = parser.parse_args()

    if not options.form:
        print("You must supply a form data file.")
        exit(2)

    logging.getLogger().setLevel(options.log.upper())

    try:
        settings = FormSettings.from_yaml(options.config) if options.config else FormSettings.from_env()
    except ConfigurationError as e:
        print(str(e))
        exit(2)

    with open(options.form) as fh:
        form_data = json.load(fh)

    result = create_submitter(settings).submit(form_data)
    print(json.dumps({
        'outcome': result.outcome.value,
        'message': result.message,
        'contact_id': result.contact_id,
        'member_id': result.member_id,
        'failure': result.failure.getJSON() if result.failure else None
    }, indent=2))
    exit(0 if result.succeeded else 1)

#!/usr/bin/env python
import logging
import sys
from urllib.parse import urlencode, urlsplit, urlunsplit

from flask import Flask, redirect, request

from membership.application.submission import MembershipSubmitter, create_submitter
from membership.config import FormSettings

logger = logging.getLogger(__name__)


def add_query_args(url, args):
    scheme, netloc, path, query, fragment = urlsplit(url)
    query = '&'.join(part for part in [query, urlencode(args)] if part)
    return urlunsplit((scheme, netloc, path, query, fragment))


def create_app(settings: FormSettings = None, submitter: MembershipSubmitter = None) -> Flask:
    settings = settings or FormSettings.from_env()
    submitter = submitter or create_submitter(settings)

    app = Flask(__name__)

    @app.route('/submit', methods=['POST'])
    def submit_application():
        logger.info('Membership application received')
        result = submitter.submit(request.form.to_dict())

        if result.succeeded:
            target = settings.success_url or '/'
            return redirect(add_query_args(target, {'ev_status': 'success', 'ev_message': result.message}))

        status = 'validation' if result.user_correctable else 'error'
        target = settings.error_url or request.referrer or '/'
        logger.info(f'Membership application not accepted: {result.outcome.value}')
        return redirect(add_query_args(target, {'ev_status': status, 'ev_message': result.message}))

    return app


if __name__ == '__main__':
    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    logging.basicConfig(format=format, stream=sys.stdout, level=logging.INFO)

    create_app().run(host='0.0.0.0', port=5000)

from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util import retry


def create_session(retry_policy=None) -> Session:
    retry_policy = retry_policy or retry.Retry(
        total=0,
        # the only retry is the one issued by the client after a 401,
        # connection and read errors surface straight away

        read=False,
        redirect=False,
        raise_on_status=False
    )
    session = Session()
    session.max_redirects = 0
    adapter = HTTPAdapter(max_retries=retry_policy)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session

import logging

import requests

from .models import Credentials, LMSType
from .utils import get_header


class LMSSession(requests.Session):

    """
    Extends the regular :class:`requests.Session` class to carry the
    credentials of a single LMS connection. Canvas authenticates with a
    bearer header that is set once here; Moodle sends its token with
    every request body, so only the `Accept` header is set for it.

    :ivar logging.Logger logger: module-wide logger, accessed by
        __name__
    :ivar str base_url: the LMS root URL without a trailing slash
    """

    def __init__(self, credentials: Credentials):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.credentials = credentials
        self.base_url = credentials.base_url.rstrip('/')
        if credentials.type is LMSType.CANVAS:
            self.headers.update(get_header(credentials.access_token))
        else:
            self.headers.update({'Accept': 'application/json'})
        self.logger.debug(f'Session opened for {credentials.type} at '
                          f'{self.base_url}.')

    @property
    def token(self) -> str:
        return self.credentials.access_token

    def __del__(self):
        self.close()

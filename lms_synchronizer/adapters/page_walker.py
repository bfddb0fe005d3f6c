from typing import Generator
import logging

import requests

from ..exceptions import LMSRequestError


class PageWalker(object):
    """
    A class designed to abstract the process of walking over multiple
    paginated responses. Canvas announces the following page in the
    `Link` header with ``rel="next"``.
    """
    def __init__(self, session: requests.Session,
                 logger: logging.Logger = None, max_pages: int = 100):
        """
        :param session: the session used for every page request
        :param logger: custom logger
        :param max_pages: stop after this many pages
        """
        if logger is None:
            self.logger = logging.getLogger(__name__)
        else:
            self.logger = logger
        self.session = session
        self.max_pages = max_pages

    def walk(self, url: str, endpoint: str, params: dict = None) \
            -> Generator[requests.Response, None, None]:
        """
        A generator for walking over the paginated responses.

        :param url: the URL of the first page
        :param endpoint: endpoint name reported on errors
        :param params: query parameters for the first page; later pages
            carry their own in the `next` link
        :raises LMSRequestError: on any non-2xx page
        """
        current_page = 1
        r = self.session.get(url, params=params)
        while True:
            if not r.ok:
                raise LMSRequestError.from_response(endpoint, r)
            yield r

            next_link = r.links.get('next', {}).get('url')
            if not next_link or current_page >= self.max_pages:
                return
            current_page += 1
            self.logger.debug(f'Reading page {current_page} of {endpoint}.')
            r = self.session.get(next_link)

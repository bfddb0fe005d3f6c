from typing import List, Mapping, Optional
import logging
import os

from . import exceptions
from .constants import DEFAULT_CANVAS_URL, DEFAULT_MOODLE_URL
from .crypto import decrypt_token
from .models import Credentials, LMSType
from .storage import TokenStore


class CredentialResolver(object):

    """
    Looks up and decrypts the access token a user stored for an LMS.

    Resolution reads the token store and the environment on every call
    and keeps nothing between calls. The following environment variables
    are used:

    - CANVAS_URL: base URL of the Canvas instance
    - MOODLE_URL: base URL of the Moodle instance
    - MOODLE_WS_TOKEN: a Moodle web service token used in place of any
      per-user Moodle token
    - ENCRYPTION_SECRET: key material for decrypting stored tokens

    :param TokenStore token_store: where encrypted tokens are kept
    :param environ: mapping to read configuration from, defaults to
        `os.environ`
    """

    def __init__(self, token_store: TokenStore,
                 environ: Mapping[str, str] = None):
        self.token_store = token_store
        self.environ = environ
        self.logger = logging.getLogger(__name__)

    @property
    def env(self) -> Mapping[str, str]:
        return os.environ if self.environ is None else self.environ

    def resolve(self, user_id: str, lms_type: LMSType) \
            -> Optional[Credentials]:
        """
        Returns the credentials for `lms_type`, or `None` when the user
        has not connected that LMS. `None` means the LMS should be
        skipped, not that the export failed.

        :param user_id: the local user
        :param lms_type: which LMS to resolve credentials for
        :raises UnsupportedLMSError: for an unknown LMS type
        """
        lms_type = LMSType.parse(lms_type)
        if lms_type is LMSType.CANVAS:
            token = self._stored_token(user_id, lms_type)
            base_url = self.env.get('CANVAS_URL', DEFAULT_CANVAS_URL)
        elif lms_type is LMSType.MOODLE:
            base_url = self.env.get('MOODLE_URL', DEFAULT_MOODLE_URL)
            token = self.env.get('MOODLE_WS_TOKEN')
            if token:
                self.logger.debug('Using MOODLE_WS_TOKEN from the '
                                  'environment.')
            else:
                token = self._stored_token(user_id, lms_type)
        else:
            raise exceptions.UnsupportedLMSError(lms_type)

        if token is None:
            return None
        return Credentials(access_token=token, base_url=base_url.rstrip('/'),
                           type=lms_type)

    def _stored_token(self, user_id: str, lms_type: LMSType) -> Optional[str]:
        try:
            encrypted = self.token_store.get(user_id, lms_type)
        except (OSError, ValueError):
            self.logger.exception(f'Could not read the {lms_type} token '
                                  f'of user "{user_id}".')
            return None
        if not encrypted:
            self.logger.info(f'User "{user_id}" has not connected '
                             f'{lms_type}.')
            return None
        try:
            return decrypt_token(encrypted,
                                 secret=self.env.get('ENCRYPTION_SECRET'))
        except (exceptions.TokenDecryptionError, EnvironmentError):
            self.logger.exception(f'Could not decrypt the {lms_type} token '
                                  f'of user "{user_id}".')
            return None

    def has_connection(self, user_id: str, lms_type: LMSType) -> bool:
        return self.resolve(user_id, lms_type) is not None

    def connections(self, user_id: str) -> List[LMSType]:
        """Returns every LMS the user can currently export to."""
        return [t for t in LMSType if self.has_connection(user_id, t)]

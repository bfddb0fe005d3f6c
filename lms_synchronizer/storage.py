"""
Persistence contracts used by the synchronizer. Token storage and
remote course ids live outside of this library; the classes here only
define how they are read and written. The JSON-file implementations
back the command line driver and are re-read on every access.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union
import json
import logging
import threading

from .models import LMSType


class TokenStore(ABC):

    @abstractmethod
    def get(self, user_id: str, lms_type: LMSType) -> Optional[str]:
        """Returns the encrypted token, `None` if the user never connected."""
        pass

    @abstractmethod
    def set(self, user_id: str, lms_type: LMSType, encrypted: str):
        pass


class RemoteIdStore(ABC):

    @abstractmethod
    def get(self, course_id: str, lms_type: LMSType) -> Optional[str]:
        """Returns the id of the remote course created for `course_id`."""
        pass

    @abstractmethod
    def set(self, course_id: str, lms_type: LMSType, remote_id: str):
        pass


class _JsonStore(object):

    """
    A two-level ``{key: {lms_type: value}}`` mapping kept in a JSON file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)
        self._write_lock = threading.Lock()

    def _load(self) -> dict:
        try:
            with open(self.path, 'r') as f:
                return json.load(f)
        except FileNotFoundError:
            return {}

    def _get(self, key: str, lms_type: LMSType) -> Optional[str]:
        return self._load().get(str(key), {}).get(LMSType(lms_type).value)

    def _set(self, key: str, lms_type: LMSType, value: str):
        with self._write_lock:
            data = self._load()
            data.setdefault(str(key), {})[LMSType(lms_type).value] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w+') as f:
                json.dump(data, f, indent=2)
        self.logger.debug(f'Wrote {lms_type} entry for "{key}" to '
                          f'{self.path}.')


class JsonTokenStore(_JsonStore, TokenStore):

    def get(self, user_id: str, lms_type: LMSType) -> Optional[str]:
        return self._get(user_id, lms_type)

    def set(self, user_id: str, lms_type: LMSType, encrypted: str):
        self._set(user_id, lms_type, encrypted)


class JsonRemoteIdStore(_JsonStore, RemoteIdStore):

    def get(self, course_id: str, lms_type: LMSType) -> Optional[str]:
        return self._get(course_id, lms_type)

    def set(self, course_id: str, lms_type: LMSType, remote_id: str):
        self._set(course_id, lms_type, str(remote_id))

from abc import ABC, abstractmethod
from typing import Callable, ClassVar, List
import logging

from ..lms_session import LMSSession
from ..models import (CourseExportData, Credentials, ExportUnit, LMSType,
                      RemoteCourse, RemoteStructureElement, Result)


class LMSAdapter(ABC):

    """
    The contract every LMS backend implements. Subclasses declare the
    `lms_type` they serve, which is what :func:`build_adapter` dispatches
    on.

    None of the public methods raise. Anything that goes wrong while
    talking to the LMS is logged and returned as a failed
    :class:`Result` whose error starts with the name of the operation,
    so that one LMS failing never interrupts an export to another.
    """

    lms_type: ClassVar[LMSType]

    def __init__(self, credentials: Credentials, session: LMSSession = None):
        logger_name = '.'.join([__name__, self.__class__.__name__])
        self.logger = logging.getLogger(logger_name)
        self.credentials = credentials
        self.session = session if session is not None \
            else LMSSession(credentials)

    @abstractmethod
    def create_course(self, course_data: CourseExportData) \
            -> Result[RemoteCourse]:
        """Creates the course shell in the LMS."""
        pass

    @abstractmethod
    def sync_structure(self, remote_course_id: str,
                       units: List[ExportUnit]) \
            -> Result[List[RemoteStructureElement]]:
        """Brings the course structure in line with `units`."""
        pass

    @abstractmethod
    def test_connection(self) -> Result[dict]:
        pass

    @abstractmethod
    def list_courses(self) -> Result[List[RemoteCourse]]:
        pass

    def _as_result(self, operation: str, func: Callable, *args) -> Result:
        """
        Runs `func` and wraps its return value in a successful
        :class:`Result`. If `func` already returns a :class:`Result` it
        is passed through.
        """
        try:
            value = func(*args)
        except Exception as e:
            self.logger.exception(f'{self.lms_type} {operation} failed.')
            return Result.failure(f'{operation}: {e}')

        if isinstance(value, Result):
            return value
        return Result.success(value)

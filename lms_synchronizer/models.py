"""
Data objects exchanged between the exporter, the credential resolver
and the LMS adapters.

Local objects (:class:`LocalCourse`, :class:`LocalUnit`) describe the
course as it was authored. :class:`CourseExportData` is the flattened
payload handed to an adapter, and :class:`RemoteCourse` and
:class:`RemoteStructureElement` describe what the LMS reports back.
Every adapter call answers with a :class:`Result` instead of raising.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from . import exceptions
from .utils import parse_date

T = TypeVar('T')


class LMSType(str, Enum):
    CANVAS = 'canvas'
    MOODLE = 'moodle'

    @classmethod
    def parse(cls, value) -> 'LMSType':
        try:
            return cls(value)
        except ValueError:
            raise exceptions.UnsupportedLMSError(value)

    def __str__(self):
        return self.value


@dataclass
class LocalUnit(object):

    id: str
    title: str
    description: str = ''
    position: int = 0


@dataclass
class LocalCourse(object):

    """
    A course as authored locally. The order of `units` is the source of
    truth for each unit's 1-based position; `from_dict` renumbers the
    units to restore that invariant.
    """

    id: str
    title: str
    description: str = ''
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    units: List[LocalUnit] = field(default_factory=list)
    external_ids: Dict[LMSType, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> 'LocalCourse':
        try:
            units = [
                LocalUnit(id=str(u['id']), title=u['title'],
                          description=u.get('description', ''),
                          position=i + 1)
                for i, u in enumerate(d.get('units', []))
            ]
            external_ids = {
                LMSType.parse(k): str(v)
                for k, v in d.get('external_ids', {}).items() if v
            }
            return cls(id=str(d['id']), title=d['title'],
                       description=d.get('description', ''),
                       start_date=parse_date(d.get('start_date')),
                       end_date=parse_date(d.get('end_date')),
                       units=units, external_ids=external_ids)
        except KeyError:
            raise exceptions.LMSMalformedJsonException(d)

    def to_export_data(self) -> 'CourseExportData':
        units = [
            ExportUnit(id=u.id, name=u.title, description=u.description,
                       position=i + 1)
            for i, u in enumerate(self.units)
        ]
        return CourseExportData(name=self.title,
                                description=self.description,
                                start_date=self.start_date,
                                end_date=self.end_date, units=units)


@dataclass
class ExportUnit(object):

    id: str
    name: str
    description: str
    position: int


@dataclass
class CourseExportData(object):

    name: str
    description: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    units: List[ExportUnit] = field(default_factory=list)


@dataclass
class RemoteCourse(object):

    id: str
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    visible: bool = False


@dataclass
class RemoteStructureElement(object):

    """A Canvas module or a Moodle section."""

    id: str
    name: str
    description: Optional[str] = None
    position: Optional[int] = None


@dataclass
class Credentials(object):

    access_token: str
    base_url: str
    type: LMSType

    def __repr__(self):
        # Keep tokens out of logs and tracebacks
        return (f'Credentials(base_url={self.base_url!r}, '
                f'type={self.type.value!r})')


@dataclass
class OperationResult(object):

    """The outcome of a single remote call made during a sync."""

    operation: str
    target: Any = None
    ok: bool = True
    error: Optional[str] = None


@dataclass
class Result(Generic[T]):

    """
    Tagged success/failure value returned across the adapter boundary.

    `operations` holds the outcome of every sub-operation that ran
    while producing the result, so callers can tell which individual
    calls failed even when the result as a whole succeeded.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    operations: List[OperationResult] = field(default_factory=list)

    @classmethod
    def success(cls, value: T,
                operations: List[OperationResult] = None) -> 'Result[T]':
        return cls(ok=True, value=value, operations=operations or [])

    @classmethod
    def failure(cls, error: str,
                operations: List[OperationResult] = None) -> 'Result[T]':
        return cls(ok=False, error=error, operations=operations or [])

    @property
    def failed_operations(self) -> List[OperationResult]:
        return [op for op in self.operations if not op.ok]


class ExportStatus(str, Enum):
    SUCCESS = 'success'
    FAILED = 'failed'
    NOT_CONNECTED = 'not_connected'


@dataclass
class ExportOutcome(object):

    """What happened when a course was exported to one LMS."""

    lms_type: LMSType
    status: ExportStatus
    remote_course_id: Optional[str] = None
    is_update: bool = False
    structure: List[RemoteStructureElement] = field(default_factory=list)
    error: Optional[str] = None
    operations: List[OperationResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ExportStatus.SUCCESS

    def to_dict(self) -> dict:
        as_dict = asdict(self)
        as_dict['lms_type'] = self.lms_type.value
        as_dict['status'] = self.status.value
        return as_dict

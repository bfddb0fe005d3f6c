from typing import Callable, Dict, Tuple
import json
import logging
import threading
import time

from . import delegates
from ..adapters import LMSAdapter, build_adapter
from ..credentials import CredentialResolver
from ..export_schedule import ExportSchedule
from ..models import Credentials, ExportOutcome, LMSType, LocalCourse
from ..storage import RemoteIdStore


class ExportLocks(object):

    """
    One lock per (course, LMS) pair. Share a single instance between
    exporters so that overlapping exports of the same course to the
    same LMS run one after the other.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, LMSType], threading.Lock] = {}

    def lock_for(self, course_id: str, lms_type: LMSType) -> threading.Lock:
        key = (str(course_id), LMSType(lms_type))
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]


class CourseExporter(object):

    """
    A driver class that exports one local course to the LMSs a user has
    connected. The local course is the "master" copy; each LMS is
    brought in line with it independently, so a failure in one never
    keeps the other from being exported.

    :param LocalCourse course: the course to export
    :param str user_id: the user whose LMS credentials are used
    :param CredentialResolver resolver: resolves per-user credentials
    :param RemoteIdStore id_store: where remote course ids are kept
    :param ExportLocks locks: shared lock registry; a private one is
        created if omitted
    :param adapter_factory: builds an adapter from credentials
    """

    def __init__(self, course: LocalCourse, user_id: str,
                 resolver: CredentialResolver, id_store: RemoteIdStore,
                 locks: ExportLocks = None,
                 adapter_factory: Callable[[Credentials], LMSAdapter]
                 = build_adapter):
        self.logger = logging.getLogger(__name__)
        self.course = course
        self.user_id = user_id
        self.resolver = resolver
        self.id_store = id_store
        self.locks = locks if locks is not None else ExportLocks()
        self.adapter_factory = adapter_factory
        self.outcomes: Dict[LMSType, ExportOutcome] = {}
        """The outcome of every export run so far, by LMS."""

        self.export_canvas = delegates.LMSExportDelegate(self, LMSType.CANVAS)
        self.export_moodle = delegates.LMSExportDelegate(self, LMSType.MOODLE)

    def export(self, lms_type: LMSType) -> ExportOutcome:
        """Exports the course to a single LMS."""
        return getattr(self, f'export_{LMSType.parse(lms_type).value}')()

    def run_schedule(self, s: ExportSchedule = None) \
            -> Dict[LMSType, ExportOutcome]:
        """
        Run all the exports specified in the :class:`ExportSchedule`
        object.

        :param s: an ExportSchedule object, defaults to exporting to
            every LMS
        :return: the outcome of each export that ran
        """
        if s is None:
            s = ExportSchedule.default()
        self.logger.info(f'Exporting course "{self.course.id}" with '
                         f'{len(self.course.units)} units: {s}')

        outcomes = {}
        for method_name, execute in s.to_dict().items():
            if not execute:
                continue
            self.logger.info(f'Executing routine: "{method_name}"')
            outcome = getattr(self, method_name)()
            outcomes[outcome.lms_type] = outcome

        return outcomes

    def export_status(self) -> Dict[LMSType, dict]:
        """Whether, and as which remote course, each LMS was exported to."""
        status = {}
        for lms_type in LMSType:
            remote_id = self.id_store.get(self.course.id, lms_type) \
                or self.course.external_ids.get(lms_type)
            status[lms_type] = {
                'exported': remote_id is not None,
                'lms_course_id': remote_id
            }
        return status

    def save(self, path: str = 'last_export_info.json'):
        """Writes the outcomes of this exporter's runs to a JSON file."""
        output = {
            'time': time.strftime('%Y-%m-%d %H:%M:%S %Z'),
            'course_id': self.course.id,
            'user_id': self.user_id,
            'outcomes': {
                lms_type.value: outcome.to_dict()
                for lms_type, outcome in self.outcomes.items()
            }
        }
        with open(path, 'w+') as f:
            json.dump(output, f, indent=2, default=str)

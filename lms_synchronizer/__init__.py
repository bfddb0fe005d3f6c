"""
Pushes a locally authored course (title, description, dates and an
ordered list of units) into Canvas and Moodle, creating the remote
course on the first export and bringing its structure in line with the
local units on every export after that.
"""
from . import exceptions
from .adapters import build_adapter, CanvasAdapter, LMSAdapter, MoodleAdapter
from .course_exporter import CourseExporter, ExportLocks
from .credentials import CredentialResolver
from .export_schedule import ExportSchedule
from .lms_session import LMSSession
from .models import (CourseExportData, Credentials, ExportOutcome,
                     ExportStatus, ExportUnit, LMSType, LocalCourse,
                     LocalUnit, OperationResult, RemoteCourse,
                     RemoteStructureElement, Result)
from .storage import (JsonRemoteIdStore, JsonTokenStore, RemoteIdStore,
                      TokenStore)

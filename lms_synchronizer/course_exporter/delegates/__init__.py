"""
This module contains class definitions for the "delegate" classes for
use in the `course_exporter` parent module. Each delegate carries out
the export of the parent exporter's course to one LMS.

`LMSExportDelegate` resolves credentials, creates the remote course on
the first export and syncs the course structure on every export. The
parent exporter holds one instance per supported LMS.
"""
from .base_delegate import SyncDelegate
from .lms_delegate import LMSExportDelegate

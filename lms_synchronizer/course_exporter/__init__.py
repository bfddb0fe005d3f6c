"""
This module coordinates the export of a locally authored course into
the connected LMSs. The main class is `CourseExporter`, found in the
`course_exporter` submodule. It makes use of "delegate" classes, found
in the `delegates` submodule, each of which subclasses the
`SyncDelegate` interface:

    - `LMSExportDelegate` exports the course to one LMS; the exporter
        holds one for Canvas and one for Moodle.

`ExportLocks` serializes overlapping exports of the same course to the
same LMS.
"""


from .course_exporter import CourseExporter, ExportLocks

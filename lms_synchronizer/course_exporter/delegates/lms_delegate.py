from __future__ import annotations
from typing import Optional, TYPE_CHECKING

from . import SyncDelegate
from ... import exceptions
from ...models import (ExportOutcome, ExportStatus, LMSType, LocalCourse)

if TYPE_CHECKING:
    from ..course_exporter import CourseExporter


class LMSExportDelegate(SyncDelegate):

    """
    Exports the parent exporter's course to a single LMS:

        1. resolve the user's credentials, skipping the LMS if there are
           none,
        2. create the remote course if no remote id is stored yet, and
           store the new id,
        3. sync the complete, ordered unit list into the remote course.

    Exports of the same course to the same LMS are serialized through
    the exporter's :class:`ExportLocks`.
    """

    def __init__(self, exporter: CourseExporter, lms_type: LMSType):
        super().__init__(exporter)
        self.lms_type = LMSType.parse(lms_type)

    def execute(self) -> ExportOutcome:
        course = self.exporter.course
        lock = self.exporter.locks.lock_for(course.id, self.lms_type)
        if lock.locked():
            self.logger.info(f'Waiting for a running {self.lms_type} export '
                             f'of course "{course.id}".')
        with lock:
            outcome = self.export(course)

        self.exporter.outcomes[self.lms_type] = outcome
        if outcome.ok:
            action = 'Updated' if outcome.is_update else 'Created'
            self.logger.info(f'{action} {self.lms_type} course '
                             f'{outcome.remote_course_id} with '
                             f'{len(outcome.structure)} units.')
        elif outcome.status is ExportStatus.FAILED:
            self.logger.error(f'{self.lms_type} export of course '
                              f'"{course.id}" failed: {outcome.error}')
        return outcome

    def export(self, course: LocalCourse) -> ExportOutcome:
        try:
            credentials = self.exporter.resolver.resolve(
                self.exporter.user_id, self.lms_type
            )
        except (exceptions.LMSError, OSError) as e:
            self.logger.exception(f'Could not resolve {self.lms_type} '
                                  'credentials.')
            return ExportOutcome(self.lms_type, ExportStatus.FAILED,
                                 error=f'resolve_credentials: {e}')
        if credentials is None:
            self.logger.info(f'{self.lms_type} is not connected for user '
                             f'"{self.exporter.user_id}". Skipping.')
            return ExportOutcome(self.lms_type, ExportStatus.NOT_CONNECTED,
                                 error=f'{self.lms_type} not connected')

        try:
            adapter = self.exporter.adapter_factory(credentials)
        except exceptions.UnsupportedLMSError as e:
            return ExportOutcome(self.lms_type, ExportStatus.FAILED,
                                 error=str(e))

        export_data = course.to_export_data()
        remote_id = self.stored_remote_id(course)
        is_update = remote_id is not None

        if not is_update:
            created = adapter.create_course(export_data)
            if not created.ok:
                return ExportOutcome(self.lms_type, ExportStatus.FAILED,
                                     error=created.error)
            remote_id = created.value.id
            try:
                self.exporter.id_store.set(course.id, self.lms_type,
                                           remote_id)
            except OSError as e:
                self.logger.exception('Could not store remote course id '
                                      f'{remote_id}.')
                return ExportOutcome(self.lms_type, ExportStatus.FAILED,
                                     remote_course_id=remote_id,
                                     error=f'store_remote_id: {e}')
            course.external_ids[self.lms_type] = remote_id

        synced = adapter.sync_structure(remote_id, export_data.units)
        if not synced.ok:
            return ExportOutcome(self.lms_type, ExportStatus.FAILED,
                                 remote_course_id=remote_id,
                                 is_update=is_update, error=synced.error,
                                 operations=synced.operations)

        return ExportOutcome(self.lms_type, ExportStatus.SUCCESS,
                             remote_course_id=remote_id, is_update=is_update,
                             structure=synced.value,
                             operations=synced.operations)

    def stored_remote_id(self, course: LocalCourse) -> Optional[str]:
        remote_id = self.exporter.id_store.get(course.id, self.lms_type)
        if remote_id is None:
            remote_id = course.external_ids.get(self.lms_type)
        return remote_id

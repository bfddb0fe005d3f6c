from unittest import mock
import json
import os
import tempfile
import threading
import time
import unittest

import responses

from lms_synchronizer import (CourseExporter, CredentialResolver,
                              ExportLocks, ExportSchedule, ExportStatus,
                              LMSAdapter, LMSType, LocalCourse, LocalUnit,
                              RemoteCourse, RemoteIdStore,
                              RemoteStructureElement, Result)
from lms_synchronizer.crypto import encrypt_token
from .fake_moodle import FakeMoodle, MOODLE_URL
from .test_credentials import DictTokenStore, SECRET


class DictIdStore(RemoteIdStore):

    def __init__(self):
        self.ids = {}

    def get(self, course_id, lms_type):
        return self.ids.get((course_id, lms_type))

    def set(self, course_id, lms_type, remote_id):
        self.ids[(course_id, lms_type)] = remote_id


class StubAdapter(LMSAdapter):

    """Records calls instead of talking to an LMS."""

    def __init__(self, credentials, remote_id='900', fail_create=False,
                 fail_sync=False, delay=0):
        super().__init__(credentials)
        self.lms_type = credentials.type
        self.remote_id = remote_id
        self.fail_create = fail_create
        self.fail_sync = fail_sync
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0

    def create_course(self, course_data):
        self.calls.append(('create_course', course_data.name))
        if self.fail_create:
            return Result.failure('create_course: HTTP 500')
        return Result.success(RemoteCourse(id=self.remote_id,
                                           name=course_data.name))

    def sync_structure(self, remote_course_id, units):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        time.sleep(self.delay)
        self.active -= 1
        self.calls.append(('sync_structure', remote_course_id,
                           [u.name for u in units]))
        if self.fail_sync:
            return Result.failure('sync_structure: boom')
        return Result.success([
            RemoteStructureElement(id=f'{self.remote_id}-{u.position}',
                                   name=u.name, position=u.position)
            for u in units
        ])

    def test_connection(self):
        return Result.success({})

    def list_courses(self):
        return Result.success([])


class ExporterTestCase(unittest.TestCase):

    def setUp(self):
        self.token_store = DictTokenStore()
        self.environ = {'ENCRYPTION_SECRET': SECRET}
        self.resolver = CredentialResolver(self.token_store,
                                           environ=self.environ)
        self.id_store = DictIdStore()
        self.course = LocalCourse(
            id='c1', title='Intro to Biology', description='Bio',
            units=[LocalUnit('u1', 'Intro'), LocalUnit('u2', 'Advanced')]
        )

    def connect(self, lms_type, token='token'):
        self.token_store.set('alice', lms_type,
                             encrypt_token(token, secret=SECRET))


class TestCourseExporter(ExporterTestCase):

    def setUp(self):
        super().setUp()
        self.adapters = {}
        self.adapter_options = {}

    def factory(self, credentials):
        adapter = StubAdapter(credentials,
                              **self.adapter_options.get(credentials.type, {}))
        self.adapters[credentials.type] = adapter
        return adapter

    def exporter(self, locks=None) -> CourseExporter:
        return CourseExporter(self.course, 'alice', self.resolver,
                              self.id_store, locks=locks,
                              adapter_factory=self.factory)

    def test_first_export_creates_and_stores_course(self):
        self.connect(LMSType.CANVAS)
        outcome = self.exporter().export(LMSType.CANVAS)

        self.assertIs(outcome.status, ExportStatus.SUCCESS)
        self.assertFalse(outcome.is_update)
        self.assertEqual(outcome.remote_course_id, '900')
        self.assertEqual(self.id_store.get('c1', LMSType.CANVAS), '900')
        self.assertEqual(self.course.external_ids[LMSType.CANVAS], '900')
        self.assertEqual(self.adapters[LMSType.CANVAS].calls, [
            ('create_course', 'Intro to Biology'),
            ('sync_structure', '900', ['Intro', 'Advanced']),
        ])

    def test_later_exports_only_sync(self):
        self.connect(LMSType.MOODLE)
        self.id_store.set('c1', LMSType.MOODLE, '42')
        self.course.units.append(LocalUnit('u3', 'Review'))

        outcome = self.exporter().export('moodle')

        self.assertTrue(outcome.ok)
        self.assertTrue(outcome.is_update)
        self.assertEqual(self.adapters[LMSType.MOODLE].calls, [
            ('sync_structure', '42', ['Intro', 'Advanced', 'Review'])
        ])

    def test_course_external_id_is_used_when_store_is_empty(self):
        self.connect(LMSType.MOODLE)
        self.course.external_ids[LMSType.MOODLE] = '7'
        outcome = self.exporter().export(LMSType.MOODLE)
        self.assertTrue(outcome.is_update)
        self.assertEqual(outcome.remote_course_id, '7')

    def test_missing_credentials_only_skip_that_lms(self):
        self.connect(LMSType.CANVAS)

        outcomes = self.exporter().run_schedule()

        self.assertIs(outcomes[LMSType.MOODLE].status,
                      ExportStatus.NOT_CONNECTED)
        self.assertIs(outcomes[LMSType.CANVAS].status, ExportStatus.SUCCESS)
        self.assertNotIn(LMSType.MOODLE, self.adapters)

    def test_failure_in_one_lms_does_not_block_the_other(self):
        self.connect(LMSType.CANVAS)
        self.connect(LMSType.MOODLE)
        self.adapter_options[LMSType.CANVAS] = {'fail_create': True}

        outcomes = self.exporter().run_schedule(ExportSchedule.default())

        canvas = outcomes[LMSType.CANVAS]
        self.assertIs(canvas.status, ExportStatus.FAILED)
        self.assertEqual(canvas.error, 'create_course: HTTP 500')
        self.assertIsNone(self.id_store.get('c1', LMSType.CANVAS))
        self.assertTrue(outcomes[LMSType.MOODLE].ok)

    def test_failed_sync_keeps_created_course_id(self):
        self.connect(LMSType.CANVAS)
        self.adapter_options[LMSType.CANVAS] = {'fail_sync': True}

        outcome = self.exporter().export(LMSType.CANVAS)

        self.assertIs(outcome.status, ExportStatus.FAILED)
        self.assertEqual(outcome.remote_course_id, '900')
        self.assertEqual(self.id_store.get('c1', LMSType.CANVAS), '900')

    def test_schedule_selects_lms(self):
        self.connect(LMSType.CANVAS)
        self.connect(LMSType.MOODLE)
        outcomes = self.exporter().run_schedule(
            ExportSchedule(export_moodle=True)
        )
        self.assertEqual(list(outcomes), [LMSType.MOODLE])

    def test_export_status(self):
        self.id_store.set('c1', LMSType.CANVAS, '900')
        status = self.exporter().export_status()
        self.assertEqual(status[LMSType.CANVAS],
                         {'exported': True, 'lms_course_id': '900'})
        self.assertEqual(status[LMSType.MOODLE],
                         {'exported': False, 'lms_course_id': None})

    def test_save(self):
        self.connect(LMSType.CANVAS)
        exporter = self.exporter()
        exporter.run_schedule()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'last_export_info.json')
            exporter.save(path)
            with open(path, 'r') as f:
                saved = json.load(f)

        self.assertEqual(saved['course_id'], 'c1')
        self.assertEqual(saved['outcomes']['canvas']['status'], 'success')
        self.assertEqual(saved['outcomes']['moodle']['status'],
                         'not_connected')
        self.assertEqual(len(saved['outcomes']['canvas']['structure']), 2)

    def test_overlapping_exports_are_serialized(self):
        self.connect(LMSType.MOODLE)
        self.id_store.set('c1', LMSType.MOODLE, '42')
        locks = ExportLocks()
        shared = {}

        def factory(credentials):
            if 'adapter' not in shared:
                shared['adapter'] = StubAdapter(credentials, delay=0.05)
            return shared['adapter']

        exporters = [
            CourseExporter(self.course, 'alice', self.resolver,
                           self.id_store, locks=locks,
                           adapter_factory=factory)
            for _ in range(3)
        ]
        threads = [threading.Thread(target=e.export, args=(LMSType.MOODLE,))
                   for e in exporters]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(shared['adapter'].calls), 3)
        self.assertEqual(shared['adapter'].max_active, 1)


    @mock.patch.dict('os.environ', {}, clear=True)
    def test_missing_encryption_secret_does_not_block_moodle(self):
        self.token_store.set('alice', LMSType.CANVAS, 'AAAA.AAAA.AAAA')
        self.environ.clear()
        self.environ['MOODLE_WS_TOKEN'] = 'site-ws-token'

        with self.assertLogs('lms_synchronizer.credentials', 'ERROR'):
            outcomes = self.exporter().run_schedule(ExportSchedule.default())

        self.assertIs(outcomes[LMSType.CANVAS].status,
                      ExportStatus.NOT_CONNECTED)
        self.assertTrue(outcomes[LMSType.MOODLE].ok)
        self.assertEqual(self.adapters[LMSType.MOODLE].credentials
                         .access_token, 'site-ws-token')

    def test_credential_error_fails_only_that_lms(self):
        self.connect(LMSType.MOODLE)

        class BrokenCanvasResolver(CredentialResolver):
            def resolve(self, user_id, lms_type):
                if lms_type is LMSType.CANVAS:
                    raise OSError('token service unavailable')
                return super().resolve(user_id, lms_type)

        self.resolver = BrokenCanvasResolver(self.token_store,
                                             environ=self.environ)
        outcomes = self.exporter().run_schedule()

        canvas = outcomes[LMSType.CANVAS]
        self.assertIs(canvas.status, ExportStatus.FAILED)
        self.assertEqual(canvas.error,
                         'resolve_credentials: token service unavailable')
        self.assertTrue(outcomes[LMSType.MOODLE].ok)


class TestExportLocks(unittest.TestCase):

    def test_lock_per_course_and_lms(self):
        locks = ExportLocks()
        self.assertIs(locks.lock_for('c1', LMSType.MOODLE),
                      locks.lock_for('c1', 'moodle'))
        self.assertIsNot(locks.lock_for('c1', LMSType.MOODLE),
                         locks.lock_for('c1', LMSType.CANVAS))
        self.assertIsNot(locks.lock_for('c1', LMSType.MOODLE),
                         locks.lock_for('c2', LMSType.MOODLE))


class TestMoodleExport(ExporterTestCase):

    """Exports against a fake Moodle server through the real adapter."""

    def setUp(self):
        super().setUp()
        self.environ['MOODLE_URL'] = MOODLE_URL
        self.responses = responses.RequestsMock()
        self.responses.start()
        self.addCleanup(self.responses.stop)
        self.addCleanup(self.responses.reset)
        self.moodle = FakeMoodle()
        self.moodle.register(self.responses)

    def test_create_then_reconcile(self):
        self.connect(LMSType.MOODLE, 'ws-token')
        exporter = CourseExporter(self.course, 'alice', self.resolver,
                                  self.id_store)

        first = exporter.run_schedule()
        n_mutations = len(self.moodle.mutations)
        second = exporter.run_schedule()

        self.assertIs(first[LMSType.CANVAS].status,
                      ExportStatus.NOT_CONNECTED)
        self.assertTrue(first[LMSType.MOODLE].ok)
        self.assertFalse(first[LMSType.MOODLE].is_update)
        self.assertEqual(self.id_store.get('c1', LMSType.MOODLE), '42')
        self.assertEqual(
            [(e.id, e.name, e.position)
             for e in first[LMSType.MOODLE].structure],
            [('11', 'Intro', 1), ('12', 'Advanced', 2)]
        )

        self.assertTrue(second[LMSType.MOODLE].is_update)
        self.assertEqual(len(self.moodle.mutations), n_mutations)
        self.assertEqual(second[LMSType.MOODLE].structure,
                         first[LMSType.MOODLE].structure)


if __name__ == '__main__':
    unittest.main()

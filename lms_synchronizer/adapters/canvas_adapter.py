from typing import List
import os

import requests

from .base_adapter import LMSAdapter
from .page_walker import PageWalker
from .. import exceptions
from ..constants import CANVAS_API_PATH, DEFAULT_TIME_ZONE
from ..models import (CourseExportData, ExportUnit, LMSType, OperationResult,
                      RemoteCourse, RemoteStructureElement, Result)
from ..utils import make_shortname, parse_date, to_iso


class CanvasAdapter(LMSAdapter):

    """
    Maps a course onto the Canvas REST API. Units become Canvas
    "modules". Canvas is not reconciled: every call to
    :meth:`sync_structure` appends one module per unit, so syncing the
    same course twice leaves duplicate modules behind.
    """

    lms_type = LMSType.CANVAS

    @property
    def api_url(self) -> str:
        return self.session.base_url + CANVAS_API_PATH

    def call_api(self, endpoint: str, method: str = 'GET',
                 body: dict = None, params: dict = None):
        """
        Makes an authenticated call to the Canvas API.

        :param endpoint: path below ``/api/v1``, e.g. ``/courses``
        :param method: the HTTP verb
        :param body: JSON body for POST and PUT requests
        :param params: query string parameters
        :raises LMSRequestError: on a non-2xx response
        :raises LMSConnectionException: when Canvas cannot be reached
        :return: the decoded JSON response
        """
        url = self.api_url + endpoint
        self.logger.debug(f'Canvas {method} {endpoint}')
        json_body = body if method in ('POST', 'PUT') else None
        try:
            r = self.session.request(method, url, json=json_body,
                                     params=params)
        except requests.exceptions.ConnectionError:
            raise exceptions.LMSConnectionException(url)

        if not r.ok:
            raise exceptions.LMSRequestError.from_response(
                f'Canvas {method} {endpoint}', r
            )
        return r.json()

    def create_course(self, course_data: CourseExportData) \
            -> Result[RemoteCourse]:
        return self._as_result('create_course', self._create_course,
                               course_data)

    def _create_course(self, course_data: CourseExportData) -> RemoteCourse:
        payload = {
            'course': {
                'name': course_data.name,
                'course_code': make_shortname(course_data.name),
                'start_at': to_iso(course_data.start_date),
                'end_at': to_iso(course_data.end_date),
                'is_public': False,
                'is_public_to_auth_users': False,
                'public_syllabus': False,
                'public_syllabus_to_auth': False,
                'public_description': course_data.description,
                'allow_student_wiki_edits': False,
                'allow_wiki_comments': False,
                'allow_student_forum_attachments': False,
                'open_enrollment': False,
                'self_enrollment': False,
                'restrict_enrollments_to_course_dates': False,
                'term_id': None,
                'sis_course_id': None,
                'integration_id': None,
                'hide_final_grades': False,
                'apply_assignment_group_weights': True,
                'time_zone': os.environ.get('CANVAS_TIME_ZONE',
                                            DEFAULT_TIME_ZONE),
            },
            # Publish the course
            'offer': True
        }
        account_id = os.environ.get('CANVAS_ACCOUNT_ID')
        endpoint = f'/accounts/{account_id}/courses' if account_id \
            else '/courses'

        result = self.call_api(endpoint, 'POST', payload)
        course = self.parse_course(result)
        self.logger.info(f'Created Canvas course {course.id} '
                         f'"{course.name}".')
        return course

    def sync_structure(self, remote_course_id: str,
                       units: List[ExportUnit]) \
            -> Result[List[RemoteStructureElement]]:
        """
        Creates one module per unit, in unit order. Stops at the first
        module that cannot be created.
        """
        modules = []
        operations = []
        endpoint = f'/courses/{remote_course_id}/modules'
        for unit in units:
            payload = {
                'module': {
                    'name': unit.name,
                    'unlock_at': None,
                    'position': unit.position,
                    'require_sequential_progress': False,
                    'publish_final_grade': False,
                    'prerequisite_module_ids': [],
                    'published': True
                }
            }
            try:
                result = self.call_api(endpoint, 'POST', payload)
                module = RemoteStructureElement(
                    id=str(result['id']),
                    name=result.get('name', unit.name),
                    description=unit.description,
                    position=result.get('position', unit.position)
                )
            except (exceptions.LMSError, requests.exceptions.RequestException,
                    KeyError, TypeError, ValueError) as e:
                self.logger.exception('Canvas module creation failed for '
                                      f'unit "{unit.id}".')
                operations.append(OperationResult('create_module', unit.id,
                                                  ok=False, error=str(e)))
                return Result.failure(f'sync_structure: {e}', operations)

            modules.append(module)
            operations.append(OperationResult('create_module', unit.id))

        self.logger.info(f'Created {len(modules)} modules in Canvas course '
                         f'{remote_course_id}.')
        return Result.success(modules, operations)

    def test_connection(self) -> Result[dict]:
        return self._as_result('test_connection', self.call_api,
                               '/users/self/profile')

    def list_courses(self) -> Result[List[RemoteCourse]]:
        return self._as_result('list_courses', self._list_courses)

    def _list_courses(self) -> List[RemoteCourse]:
        walker = PageWalker(self.session, logger=self.logger)
        params = {'enrollment_type': 'teacher', 'state[]': 'available'}
        courses = []
        for r in walker.walk(self.api_url + '/courses', 'Canvas GET /courses',
                             params=params):
            courses.extend(self.parse_course(c) for c in r.json())
        return courses

    @staticmethod
    def parse_course(json_obj: dict) -> RemoteCourse:
        try:
            return RemoteCourse(
                id=str(json_obj['id']),
                name=json_obj.get('name'),
                description=json_obj.get('public_description'),
                start_date=parse_date(json_obj.get('start_at')),
                end_date=parse_date(json_obj.get('end_at')),
                visible=json_obj.get('workflow_state') == 'available'
            )
        except KeyError:
            raise exceptions.LMSMalformedJsonException(json_obj)

from typing import Any, List
import os

import requests

from .base_adapter import LMSAdapter
from .section_sync import SectionReconciler
from .. import exceptions
from ..constants import (DEFAULT_MOODLE_CATEGORY, MOODLE_FORMAT_HTML,
                         MOODLE_REST_PATH)
from ..models import (CourseExportData, ExportUnit, LMSType, RemoteCourse,
                      RemoteStructureElement, Result)
from ..utils import flatten_params, make_shortname, to_timestamp


class MoodleAdapter(LMSAdapter):

    """
    Maps a course onto Moodle's REST web services. Units become course
    sections, which are reconciled rather than appended; see
    :mod:`section_sync`.

    The Moodle web services require a web service token, which is a
    different credential from the OAuth2 access token used to connect a
    Moodle account.
    """

    lms_type = LMSType.MOODLE

    @property
    def rest_url(self) -> str:
        return self.session.base_url + MOODLE_REST_PATH

    def call_function(self, function_name: str, **params) -> Any:
        """
        Calls a Moodle web service function.

        :param function_name: e.g. ``core_course_get_courses``
        :param params: function parameters; nested dicts and lists are
            flattened to Moodle's ``name[0][key]`` notation
        :raises LMSRequestError: on a non-2xx response
        :raises MoodleAPIError: when Moodle returns an error payload
        :raises LMSConnectionException: when Moodle cannot be reached
        :return: the decoded JSON response
        """
        self.logger.debug(f'Moodle call {function_name} with parameters '
                          f'{sorted(params)}')
        data = {
            'wstoken': self.session.token,
            'wsfunction': function_name,
            'moodlewsrestformat': 'json',
        }
        data.update(flatten_params(params))
        try:
            r = self.session.post(self.rest_url, data=data)
        except requests.exceptions.ConnectionError:
            raise exceptions.LMSConnectionException(self.rest_url)

        if not r.ok:
            raise exceptions.LMSRequestError.from_response(function_name, r)
        try:
            result = r.json()
        except ValueError:
            raise exceptions.LMSMalformedJsonException(r.text)

        if isinstance(result, dict) and ('errorcode' in result
                                         or 'exception' in result):
            raise exceptions.MoodleAPIError(function_name,
                                            result.get('errorcode'),
                                            result.get('message', ''))
        return result

    def create_course(self, course_data: CourseExportData) \
            -> Result[RemoteCourse]:
        return self._as_result('create_course', self._create_course,
                               course_data)

    def _create_course(self, course_data: CourseExportData) -> RemoteCourse:
        category = int(os.environ.get('MOODLE_CATEGORY_ID',
                                      DEFAULT_MOODLE_CATEGORY))
        course = {
            'shortname': make_shortname(course_data.name),
            'fullname': course_data.name,
            'summary': course_data.description,
            'summaryformat': MOODLE_FORMAT_HTML,
            'categoryid': category,
            'visible': 1,
            'startdate': to_timestamp(course_data.start_date),
            'enddate': to_timestamp(course_data.end_date),
        }
        result = self.call_function('core_course_create_courses',
                                    courses=[course])
        try:
            created = result[0]
            remote = RemoteCourse(id=str(created['id']),
                                  name=created.get('fullname',
                                                   course_data.name),
                                  description=created.get(
                                      'summary', course_data.description),
                                  start_date=course_data.start_date,
                                  end_date=course_data.end_date,
                                  visible=True)
        except (IndexError, KeyError, TypeError):
            raise exceptions.LMSMalformedJsonException(result)

        self.logger.info(f'Created Moodle course {remote.id} '
                         f'"{remote.name}".')
        return remote

    def sync_structure(self, remote_course_id: str,
                       units: List[ExportUnit]) \
            -> Result[List[RemoteStructureElement]]:
        try:
            reconciler = SectionReconciler(self.call_function,
                                           remote_course_id,
                                           logger=self.logger)
        except (TypeError, ValueError):
            return Result.failure('sync_structure: invalid Moodle course id '
                                  f'"{remote_course_id}"')
        try:
            elements, operations = reconciler.reconcile(units)
        except exceptions.SectionReconciliationError as e:
            self.logger.exception('Moodle section synchronization failed.')
            return Result.failure(f'sync_structure: {e}',
                                  reconciler.operations)

        self.logger.info(f'Synchronized {len(elements)} sections in Moodle '
                         f'course {remote_course_id}.')
        return Result.success(elements, operations)

    def test_connection(self) -> Result[dict]:
        return self._as_result('test_connection', self.call_function,
                               'core_webservice_get_site_info')

    def list_courses(self) -> Result[List[RemoteCourse]]:
        return self._as_result('list_courses', self._list_courses)

    def _list_courses(self) -> List[RemoteCourse]:
        courses = self.call_function('core_course_get_courses')
        if not isinstance(courses, list):
            raise exceptions.LMSMalformedJsonException(courses)
        return [
            RemoteCourse(id=str(c['id']), name=c.get('fullname'),
                         description=c.get('summary'),
                         visible=c.get('visible') == 1)
            for c in courses
        ]

from urllib.parse import parse_qsl
import json

import responses

from .constants import DATA_DIR

MOODLE_URL = 'http://moodle.test/moodle'
REST_URL = MOODLE_URL + '/webservice/rest/server.php'
MUTATING_FUNCTIONS = {
    'core_course_create_courses',
    'core_courseformat_update_course',
    'core_course_update_courses',
    'core_update_inplace_editable',
}


class FakeMoodle(object):

    """
    Stands in for a Moodle REST server behind a `responses` callback.
    Keeps a list of course sections that the section web services read
    and modify, and records every call that was made.

    Failures are injected through `failures`, a set of keys of the form
    ``(wsfunction,)``, ``(wsfunction, action)`` or
    ``(wsfunction, itemid)``.
    """

    def __init__(self, sections=None):
        if sections is None:
            sections = [{'id': 10, 'section': 0, 'name': 'General',
                         'visible': 1}]
        self.sections = [dict(s) for s in sections]
        self.calls = []
        self.failures = set()
        with open(DATA_DIR / 'moodle.json', 'r') as f:
            self.fixtures = json.load(f)

    @classmethod
    def with_sections(cls, *names, hidden=()):
        """Builds a course with section 0 plus one section per name."""
        sections = [{'id': 10, 'section': 0, 'name': 'General',
                     'visible': 1}]
        for i, name in enumerate(names, start=1):
            sections.append({'id': 10 + i, 'section': i, 'name': name,
                             'visible': 0 if i in hidden else 1})
        return cls(sections)

    def register(self, rsps):
        rsps.add_callback(responses.POST,
                          REST_URL, callback=self,
                          content_type='application/json')

    @property
    def mutations(self):
        return [c for c in self.calls if c[0] in MUTATING_FUNCTIONS]

    def calls_to(self, function, action=None):
        return [params for name, params in self.calls
                if name == function
                and (action is None or params.get('action') == action)]

    def section_names(self):
        return {s['section']: s['name'] for s in self.sections}

    def __call__(self, request):
        params = dict(parse_qsl(request.body, keep_blank_values=True))
        function = params.pop('wsfunction')
        params.pop('wstoken')
        params.pop('moodlewsrestformat')
        self.calls.append((function, params))

        keys = {(function,), (function, params.get('action')),
                (function, params.get('itemid'))}
        if keys & self.failures:
            return self.respond({'exception': 'moodle_exception',
                                 'errorcode': 'nopermissions',
                                 'message': f'{function} is not allowed'})

        handler = getattr(self, function)
        return self.respond(handler(params))

    @staticmethod
    def respond(body):
        return 200, {}, json.dumps(body)

    def core_course_get_contents(self, params):
        return [dict(s, summary='', modules=[])
                for s in sorted(self.sections, key=lambda s: s['section'])]

    def core_courseformat_update_course(self, params):
        if params['action'] == 'section_add':
            self.sections.append({
                'id': max(s['id'] for s in self.sections) + 1,
                'section': max(s['section'] for s in self.sections) + 1,
                'name': '',
                'visible': 1
            })
        elif params['action'] == 'section_show':
            for s in self.sections:
                if s['id'] == int(params['ids[0]']):
                    s['visible'] = 1
        return '[]'

    def core_course_update_courses(self, params):
        wanted = int(params['courses[0][courseformatoptions][0][value]'])
        while len([s for s in self.sections if s['section'] >= 1]) < wanted:
            self.core_courseformat_update_course({'action': 'section_add'})
        return {'warnings': []}

    def core_update_inplace_editable(self, params):
        for s in self.sections:
            if s['id'] == int(params['itemid']):
                s['name'] = params['value']
        return {'displayvalue': params['value'], 'value': params['value']}

    def core_course_create_courses(self, params):
        return [{'id': 42, 'shortname': params['courses[0][shortname]']}]

    def core_webservice_get_site_info(self, params):
        return self.fixtures['site_info']

    def core_course_get_courses(self, params):
        return self.fixtures['courses']

"""
Reconciliation of Moodle course sections against an ordered unit list.

Moodle assigns section ids on creation, so a section that does not
exist yet has no id the synchronizer could know in advance. Sections
are therefore matched to units by ordinal: unit ``i`` (0-based) belongs
in section ``i + 1``. Section 0 is Moodle's general section and is
never mapped to a unit.

A reconciliation runs in a fixed order because Moodle's web services
are not transactional and later steps depend on earlier side effects:

    1. fetch the current sections and diff them against the units,
    2. append the missing sections one at a time,
    3. re-fetch and rename every section whose name differs,
    4. re-fetch and show every hidden section mapped to a unit,
    5. re-fetch once more, only if anything was changed, and map the
       units onto the final sections.

Each add, rename and show call is attempted independently and its
outcome recorded as an :class:`OperationResult`; a failing call only
leaves its own section stale. Sections beyond the unit count are left
alone: they are never shown, hidden or deleted, so a hidden section
beyond the unit count stays hidden.

A unit without a title is given Moodle's default section name,
``Topic <ordinal>``, which is also what an unnamed section reads as.
An untitled unit over an unnamed section is therefore already in
sync.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from .. import exceptions
from ..models import ExportUnit, OperationResult, RemoteStructureElement


@dataclass
class SectionState(object):

    id: int
    ordinal: int
    name: str
    visible: bool

    @classmethod
    def from_json(cls, json_obj: dict) -> 'SectionState':
        try:
            ordinal = int(json_obj['section'])
            return cls(id=int(json_obj['id']), ordinal=ordinal,
                       name=json_obj.get('name') or f'Topic {ordinal}',
                       visible=json_obj.get('visible', 1) != 0)
        except (KeyError, TypeError, ValueError):
            raise exceptions.LMSMalformedJsonException(json_obj)


@dataclass
class SectionRename(object):

    id: int
    current_name: str
    new_name: str


@dataclass
class SectionSync(object):

    """The changes needed to bring the sections in line with the units."""

    to_create: List[int] = field(default_factory=list)
    to_rename: List[SectionRename] = field(default_factory=list)
    to_show: List[int] = field(default_factory=list)
    unchanged: List[int] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.to_create or self.to_rename or self.to_show)


def parse_sections(contents: Any) -> List[SectionState]:
    """Parses a `core_course_get_contents` response."""
    if not isinstance(contents, list):
        raise exceptions.LMSMalformedJsonException(contents)
    return [SectionState.from_json(s) for s in contents]


def index_by_ordinal(sections: List[SectionState]) -> Dict[int, SectionState]:
    return {s.ordinal: s for s in sections}


def section_name(unit: ExportUnit, ordinal: int) -> str:
    """The name the section at `ordinal` should carry for `unit`."""
    return unit.name or f'Topic {ordinal}'


def calculate_section_changes(sections: List[SectionState],
                              units: List[ExportUnit]) -> SectionSync:
    """
    Compares the sections at ordinals ``1..len(units)`` with the units.

    :param sections: the sections currently in the course
    :param units: the desired units, in order
    :return: the sections to create (by ordinal), rename and show (by
        id), and the ids of sections that already match
    """
    sync = SectionSync()
    by_ordinal = index_by_ordinal(sections)
    for i, unit in enumerate(units):
        ordinal = i + 1
        section = by_ordinal.get(ordinal)
        if section is None:
            sync.to_create.append(ordinal)
            continue

        name = section_name(unit, ordinal)
        if section.name != name:
            sync.to_rename.append(
                SectionRename(section.id, section.name, name)
            )
        if not section.visible:
            sync.to_show.append(section.id)
        if section.name == name and section.visible:
            sync.unchanged.append(section.id)

    return sync


class SectionReconciler(object):

    """
    Runs one reconciliation of a course's sections.

    :param call: a function ``call(wsfunction, **params)`` that invokes a
        Moodle web service function and returns the decoded response
    :param course_id: the Moodle course id
    :param logger: custom logger
    """

    def __init__(self, call: Callable[..., Any], course_id: int,
                 logger: logging.Logger = None):
        self.call = call
        self.course_id = int(course_id)
        self.logger = logger or logging.getLogger(__name__)
        self.operations: List[OperationResult] = []
        self.mutated = False
        # True when a mutation was attempted after the last fetch
        self._stale = False

    def fetch_sections(self) -> List[SectionState]:
        contents = self.call('core_course_get_contents',
                             courseid=self.course_id)
        self._stale = False
        return parse_sections(contents)

    def reconcile(self, units: List[ExportUnit]) \
            -> Tuple[List[RemoteStructureElement], List[OperationResult]]:
        """
        Brings the course's sections in line with `units`.

        :raises SectionReconciliationError: when the initial fetch or the
            final mapping of units onto sections fails
        :return: one element per unit that has a section, and the
            outcome of every call made along the way
        """
        try:
            sections = self.fetch_sections()
        except Exception as e:
            raise exceptions.SectionReconciliationError(self.course_id, e)

        sync = calculate_section_changes(sections, units)
        self.logger.info(
            f'Section plan for course {self.course_id}: '
            f'{len(sections)} existing, {len(units)} wanted, '
            f'create {len(sync.to_create)}, rename {len(sync.to_rename)}, '
            f'show {len(sync.to_show)}, unchanged {len(sync.unchanged)}.'
        )

        if sync.has_changes:
            existing = len([s for s in sections if s.ordinal >= 1])
            sections = self.ensure_section_count(sections, existing,
                                                 len(units))
            if sections is not None:
                self.rename_sections(sections, units)
            self.show_sections(sections, len(units))

        try:
            if self.mutated:
                self.logger.debug('Refreshing sections after changes.')
                sections = self.fetch_sections()
            elements = self.build_elements(sections, units)
        except Exception as e:
            failed = [op.operation for op in self.operations if not op.ok]
            raise exceptions.SectionReconciliationError(self.course_id, e,
                                                        failed)

        n_failed = len([op for op in self.operations if not op.ok])
        if n_failed:
            self.logger.warning(f'{n_failed} section operations failed for '
                                f'course {self.course_id}; the next sync '
                                'will retry them.')
        return elements, self.operations

    def ensure_section_count(self, sections: List[SectionState],
                             existing: int, desired: int) \
            -> Optional[List[SectionState]]:
        """
        Appends sections until `desired` non-general sections exist.
        Each `section_add` call appends exactly one unnamed section; if
        it fails the absolute section count is set instead.

        :return: the sections after the additions, or `None` if they
            could not be re-fetched
        """
        missing = desired - existing
        if missing <= 0:
            return sections

        self.logger.info(f'Adding {missing} sections to course '
                         f'{self.course_id}.')
        for i in range(missing):
            added = self._attempt(
                'add_section', existing + i + 1,
                self.call, 'core_courseformat_update_course',
                action='section_add', courseid=self.course_id
            )
            if not added:
                self.logger.warning('section_add failed, falling back to '
                                    'setting the section count.')
                self._attempt(
                    'set_section_count', existing + i + 1,
                    self.call, 'core_course_update_courses',
                    courses=[{
                        'id': self.course_id,
                        'format': 'topics',
                        'courseformatoptions': [{
                            'name': 'numsections',
                            'value': str(existing + i + 1)
                        }]
                    }]
                )

        return self._refetch('rename')

    def rename_sections(self, sections: List[SectionState],
                        units: List[ExportUnit]):
        by_ordinal = index_by_ordinal(sections)
        for i, unit in enumerate(units):
            ordinal = i + 1
            section = by_ordinal.get(ordinal)
            if section is None:
                self.logger.warning(f'Section {ordinal} is missing, cannot '
                                    f'rename it to "{unit.name}".')
                self.operations.append(OperationResult(
                    'rename_section', ordinal, ok=False,
                    error=f'no section at ordinal {ordinal}'
                ))
                continue
            name = section_name(unit, ordinal)
            if section.name == name:
                continue

            self.logger.debug(f'Renaming section {section.id}: '
                              f'"{section.name}" -> "{name}"')
            self._attempt(
                'rename_section', section.id,
                self.call, 'core_update_inplace_editable',
                component='format_topics', itemtype='sectionname',
                itemid=section.id, value=name
            )

    def show_sections(self, sections: Optional[List[SectionState]],
                      n_units: int):
        """Shows the hidden sections at ordinals ``1..n_units``."""
        if sections is None or self._stale:
            sections = self._refetch('visibility')
            if sections is None:
                return

        hidden = [s.id for s in sections
                  if 1 <= s.ordinal <= n_units and not s.visible]
        if hidden:
            self.logger.debug(f'Making sections visible: {hidden}')
        for section_id in hidden:
            self._attempt(
                'show_section', section_id,
                self.call, 'core_courseformat_update_course',
                action='section_show', courseid=self.course_id,
                ids=[section_id]
            )

    def build_elements(self, sections: List[SectionState],
                       units: List[ExportUnit]) \
            -> List[RemoteStructureElement]:
        """
        Maps each unit onto the section at its ordinal, falling back to
        the section at the same list index if the ordinal is absent.
        """
        by_ordinal = index_by_ordinal(sections)
        elements = []
        for i, unit in enumerate(units):
            ordinal = i + 1
            section = by_ordinal.get(ordinal)
            if section is None and i < len(sections):
                section = sections[i]
            if section is None:
                self.logger.warning(f'No section found for unit "{unit.id}" '
                                    f'at ordinal {ordinal}.')
                continue
            elements.append(RemoteStructureElement(
                id=str(section.id), name=unit.name,
                description=unit.description, position=ordinal
            ))
        return elements

    def _refetch(self, stage: str) -> Optional[List[SectionState]]:
        try:
            return self.fetch_sections()
        except Exception as e:
            self.logger.exception(f'Could not re-fetch sections before the '
                                  f'{stage} pass.')
            self.operations.append(OperationResult('fetch_sections', stage,
                                                   ok=False, error=str(e)))
            return None

    def _attempt(self, operation: str, target, func: Callable,
                 *args, **kwargs) -> bool:
        """Makes one mutating call and records its outcome."""
        self.mutated = True
        self._stale = True
        try:
            func(*args, **kwargs)
        except Exception as e:
            self.logger.warning(f'{operation} failed for {target}: {e}')
            self.operations.append(OperationResult(operation, target,
                                                   ok=False, error=str(e)))
            return False
        self.operations.append(OperationResult(operation, target))
        return True

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from ..course_exporter import CourseExporter
    from ...models import ExportOutcome


class SyncDelegate(ABC):

    def __init__(self, exporter: CourseExporter):
        """
        Abstract base class that outlines behavior common to all the
        delegate classes.

        Stores reference to the parent exporter and sets the class's
        logger to that of said exporter. Requires definition of an
        `execute` method to be called with the `__call__` magic method
        such that each delegate behaves more or less as if it were a
        function defined on the `CourseExporter` class.

        :param CourseExporter exporter: the parent exporter
        """
        self.exporter = exporter
        self.logger = self.exporter.logger  # For convenience

    @abstractmethod
    def execute(self) -> ExportOutcome:
        """The main logic for running this delegate's export."""
        pass

    def __call__(self) -> ExportOutcome:
        """Calls the main export function."""
        return self.execute()

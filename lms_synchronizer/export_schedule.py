from typing import IO, Union
import json


class ExportSchedule(object):

    """
    Which LMSs a course should be exported to. You can pass an
    :class:`ExportSchedule` object to the
    :meth:`CourseExporter.run_schedule` method to run every export
    delegate whose attribute is set to True.

    Use the :meth:`from_json` method to build an object from a JSON
    file on the disk and the :meth:`default` method to build the object
    specified by the `_DEFAULT_SCHEDULE` class attribute.
    """

    _DEFAULT_SCHEDULE = {
        'export_canvas': True,
        'export_moodle': True
    }

    def __init__(self, export_canvas: bool = False,
                 export_moodle: bool = False):
        self.export_canvas = export_canvas
        self.export_moodle = export_moodle

    def __getitem__(self, item):
        try:
            return getattr(self, item)
        except AttributeError:
            return False

    def __str__(self):
        return f'{self.__class__.__name__}({str(self.to_dict())})'

    __repr__ = __str__

    @classmethod
    def default(cls) -> 'ExportSchedule':
        return cls(**cls._DEFAULT_SCHEDULE)

    @classmethod
    def from_json(cls, json_path: Union[str, IO]) -> 'ExportSchedule':
        """Creates a schedule from a JSON file."""
        if isinstance(json_path, str):
            with open(json_path, 'r') as f:
                return cls(**json.load(f))
        with json_path:
            return cls(**json.load(json_path))

    def to_dict(self) -> dict:
        return dict(self.__dict__)

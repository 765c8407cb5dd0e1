"""Exceptions raised by the pipeline. All of them abort the run."""


class StormImpactError(Exception):
    pass


class LoadError(StormImpactError):
    """An input file is missing, unreadable, or lacks a required column."""


class MappingMismatch(StormImpactError):
    """The category lookup table cannot be trusted for this record set.

    `missing` lists raw labels without an entry; `position` is the first index
    where the data's label order and the table's row order disagree.
    """

    def __init__(self, message: str, missing=None, position=None):
        super().__init__(message)
        self.missing = list(missing or [])
        self.position = position

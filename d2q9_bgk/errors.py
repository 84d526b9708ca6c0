"""
Exceptions raised by the D2Q9 BGK solver.

Library code raises these and never exits the process; the command-line
entry point turns them into a message and a non-zero exit status.
"""


class LBMError(Exception):
    """Base class for solver errors."""

    def __init__(self, message, operation=None):
        super().__init__(message)
        self.operation = operation

    def __str__(self):
        message = super().__str__()
        if self.operation:
            return f"{self.operation}: {message}"
        return message


class InputFileError(LBMError):
    """An input file is missing or unreadable."""


class OutputFileError(LBMError):
    """An output file could not be written."""


class ParameterFormatError(LBMError):
    """The parameter file is malformed or holds an out-of-range value."""


class ObstacleFormatError(LBMError):
    """The obstacle file is malformed or names a cell outside the grid."""


class AllocationError(LBMError):
    """The population buffers could not be allocated."""

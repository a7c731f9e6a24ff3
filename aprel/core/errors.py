"""Process exit codes.

Every failure the pipeline can report maps to one of these codes, so CI can
tell a bad tag apart from a broken build or a failed upload.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (malformed tag, unknown platform, missing policy)
    - 2: Environment error (gh missing)
    - 3: Build error (dependency install or compilation failed)
    - 4: Network error (asset upload failed)
    - 5: I/O error (missing binary, archive write failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

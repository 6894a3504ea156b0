# security/input_validation.py

from pathlib import Path
import logging
import os

logger = logging.getLogger(__name__)

class SecurityValidator:
    """
    Validate input and output locations
    """

    SYSTEM_DIRS = (
        Path('/etc'), Path('/sys'), Path('/proc'), Path('/dev'),
        Path('C:\\Windows'), Path('C:\\Program Files')
    )

    @staticmethod
    def validate_directory(directory: str, allow_system_dirs: bool = False,
                           writable: bool = False) -> bool:
        """
        Validate directory path
        """
        try:
            dir_path = Path(directory).resolve()
        except (OSError, RuntimeError) as e:
            logger.error("Directory validation error: %s", e)
            return False

        # Check if directory exists
        if not dir_path.is_dir():
            return False

        # Prevent access to system directories
        if not allow_system_dirs:
            for sys_dir in SecurityValidator.SYSTEM_DIRS:
                if sys_dir.exists() and dir_path.is_relative_to(sys_dir.resolve()):
                    return False

        # Check permissions
        if not os.access(dir_path, os.R_OK):
            return False
        if writable and not os.access(dir_path, os.W_OK):
            return False

        return True

    @staticmethod
    def validate_output_file(path: str) -> bool:
        """
        Check that path can be written: its parent exists or can be created,
        and it is not a directory
        """
        target = Path(path)
        if target.is_dir():
            return False

        parent = target.resolve().parent
        while not parent.exists():
            parent = parent.parent

        return os.access(parent, os.W_OK)

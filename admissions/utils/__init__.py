"""
Shared utilities
"""

from .number_generator import generate_application_number
from .dates import utc_now, to_local, format_local
from .file_utils import save_upload, remove_file, remove_empty_dir, remove_application_dir, application_upload_dir

__all__ = [
    'generate_application_number',
    'utc_now',
    'to_local',
    'format_local',
    'save_upload',
    'remove_file',
    'remove_empty_dir',
    'remove_application_dir',
    'application_upload_dir',
]

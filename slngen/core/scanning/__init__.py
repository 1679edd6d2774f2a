from .models import FileScan, ScanBucket
from .scanner import ProjectScanner, is_ignored_name, scan_files
from .snapshot import ScanSnapshot, scan_project

__all__ = [
    "FileScan",
    "ScanBucket",
    "ProjectScanner",
    "ScanSnapshot",
    "is_ignored_name",
    "scan_files",
    "scan_project",
]

"""Version and build id of the bundle, found by plain text search."""

import re
from dataclasses import dataclass
from typing import Callable, Optional

VERSION_PATTERN = re.compile(r'VERSION="(?P<version>\d*\.\d*\.\d*)"')
BUILD_PATTERN = re.compile(r'BUILD_ID="(?P<build>\d*)"')


@dataclass
class ScriptMetadata:
    version: Optional[str] = None
    build: Optional[str] = None


def extract_metadata(source: str, on_log: Optional[Callable[[str, str], None]] = None) -> ScriptMetadata:
    """Informational only: a missing value is reported and left as None."""
    log = on_log or (lambda level, message: None)
    metadata = ScriptMetadata()

    if match := VERSION_PATTERN.search(source):
        metadata.version = match.group('version')
        log('info', f'found version "{metadata.version}"')
    else:
        log('warn', "couldn't find version")

    if match := BUILD_PATTERN.search(source):
        metadata.build = match.group('build')
        log('info', f'found build "{metadata.build}"')
    else:
        log('warn', "couldn't find build")

    return metadata

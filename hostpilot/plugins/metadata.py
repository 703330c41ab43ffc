"""
Plugin metadata parser.

A plugin source file declares itself through a comment header block::

    # <plugin>
    # Name = "disk-cleanup"
    # Version = "1.2.0"
    # Author = "Ops Team"
    # Description = "Removes stale temporary files"
    # Interface = "IMaintenancePlugin"
    # Category = "system"
    # Dependencies = ["core-utils", "pyyaml"]
    # Tags = ["cleanup", "disk"]
    # RequiredPermissions = ["FileSystemWrite"]
    # </plugin>

Files without a complete header are skipped, never treated as errors.
"""

import datetime
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger

from ..core.domain.plugins import PluginDescriptor
from ..core.exceptions import DiscoveryError
from ..core.interfaces.contracts import ContractRegistry, default_contracts

log = logger.bind(component="MetadataParser")

HEADER_PATTERN = re.compile(
    r"^[ \t]*#[ \t]*<plugin>[ \t]*$(?P<body>.*?)^[ \t]*#[ \t]*</plugin>[ \t]*$",
    re.MULTILINE | re.DOTALL | re.IGNORECASE,
)
FIELD_PATTERN = re.compile(r"^[ \t]*#[ \t]*(?P<key>[A-Za-z][A-Za-z0-9_]*)[ \t]*=[ \t]*(?P<value>.*?)[ \t]*$")

REQUIRED_FIELDS = ("Name", "Version", "Author", "Description", "Interface")
SCALAR_FIELDS = REQUIRED_FIELDS + ("Category", "Website", "LicenseUri", "MinimumApiVersion")
LIST_FIELDS = ("Dependencies", "Tags", "RequiredPermissions")

_CANONICAL_KEYS = {key.lower(): key for key in SCALAR_FIELDS + LIST_FIELDS}

HeaderValue = Union[str, List[str]]


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return value.strip()


def _parse_list(value: str) -> List[str]:
    inner = value.strip()
    if inner.startswith('[') and inner.endswith(']'):
        inner = inner[1:-1]
    items = [_strip_quotes(item) for item in inner.split(',')]
    return [item for item in items if item]


def parse_header(source: str) -> Optional[Dict[str, HeaderValue]]:
    """
    Extract the raw header fields from plugin source text.

    Returns:
        Mapping of canonical field name to scalar or list value, or None if
        the source carries no header block. Unknown keys are ignored.
    """
    match = HEADER_PATTERN.search(source)
    if not match:
        return None

    fields: Dict[str, HeaderValue] = {}
    for line in match.group('body').splitlines():
        field_match = FIELD_PATTERN.match(line)
        if not field_match:
            continue

        key = _CANONICAL_KEYS.get(field_match.group('key').lower())
        if key is None:
            continue

        raw_value = field_match.group('value')
        if key in LIST_FIELDS:
            fields[key] = _parse_list(raw_value)
        else:
            fields[key] = _strip_quotes(raw_value)

    return fields


def missing_required_fields(fields: Dict[str, HeaderValue]) -> List[str]:
    missing = []
    for key in REQUIRED_FIELDS:
        value = fields.get(key)
        if not isinstance(value, str) or not value.strip():
            missing.append(key)
    return missing


class PluginMetadataParser:
    """Builds plugin descriptors from plugin source files."""

    def __init__(self, contracts: Optional[ContractRegistry] = None) -> None:
        self._contracts = contracts or default_contracts

    def parse_source(self, source: str, file_path: str, file_size: Optional[int] = None,
                     last_modified: Optional[datetime.datetime] = None) -> PluginDescriptor:
        """
        Build a descriptor from source text.

        Raises:
            DiscoveryError: If the header is absent or incomplete
        """
        fields = parse_header(source)
        if fields is None:
            raise DiscoveryError(f"No plugin header block in {file_path}")

        missing = missing_required_fields(fields)
        if missing:
            raise DiscoveryError(
                f"Plugin header in {file_path} is missing required field(s): {', '.join(missing)}",
                missing_fields=missing)

        interface_name = str(fields['Interface'])
        return PluginDescriptor(
            name=str(fields['Name']),
            version=str(fields['Version']),
            author=str(fields['Author']),
            description=str(fields['Description']),
            interface_name=interface_name,
            file_path=file_path,
            category=self._optional(fields, 'Category'),
            website=self._optional(fields, 'Website'),
            license_uri=self._optional(fields, 'LicenseUri'),
            min_api_version=self._optional(fields, 'MinimumApiVersion'),
            dependencies=tuple(fields.get('Dependencies', [])),
            tags=frozenset(fields.get('Tags', [])),
            required_permissions=frozenset(fields.get('RequiredPermissions', [])),
            file_size=file_size if file_size is not None else len(source.encode('utf-8')),
            last_modified=last_modified,
            discovery_time=datetime.datetime.now(),
            interface_valid=self._contracts.has_contract(interface_name),
        )

    def parse_file(self, path: Union[str, Path]) -> Optional[PluginDescriptor]:
        """
        Parse a plugin file.

        Returns:
            The descriptor, or None if the file has no complete header or
            cannot be read. The reason is logged.
        """
        descriptor, _ = self.parse_file_with_source(path)
        return descriptor

    def parse_file_with_source(self, path: Union[str, Path]) -> Tuple[Optional[PluginDescriptor], Optional[str]]:
        file_path = Path(path)
        try:
            source = file_path.read_text(encoding='utf-8')
            stat = file_path.stat()
        except (OSError, UnicodeDecodeError) as e:
            log.warning(f"Cannot read plugin candidate {file_path}: {e}")
            return None, None

        try:
            descriptor = self.parse_source(
                source,
                str(file_path),
                file_size=stat.st_size,
                last_modified=datetime.datetime.fromtimestamp(stat.st_mtime),
            )
        except DiscoveryError as e:
            if e.missing_fields:
                log.warning(e.message)
            else:
                log.debug(e.message)
            return None, source

        return descriptor, source

    @staticmethod
    def _optional(fields: Dict[str, HeaderValue], key: str) -> Optional[str]:
        value = fields.get(key)
        if isinstance(value, str) and value:
            return value
        return None

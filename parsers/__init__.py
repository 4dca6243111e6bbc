"""
File parsers module.
"""

from parsers.mapping_file_parser import (
    parse_mapping_file,
    parse_mapping_rows,
    MappingFileParseResult,
    MappingGroup,
)

__all__ = [
    "parse_mapping_file",
    "parse_mapping_rows",
    "MappingFileParseResult",
    "MappingGroup",
]

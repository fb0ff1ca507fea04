"""Program definition loading."""

from .program_loader import (
    ProgramDefinition,
    build_program_definition,
    get_programs_dir,
    list_bundled_programs,
    load_program_document,
    load_program_file,
)

__all__ = [
    "ProgramDefinition",
    "build_program_definition",
    "get_programs_dir",
    "list_bundled_programs",
    "load_program_document",
    "load_program_file",
]

"""
File Name Template Module

Expands the tokens accepted by the output (-o) and mask (-m) options:
- %if[n]: base file name of input n
- %iF[n]: base file name of input n without the extension
- %id[n]: directory of input n
- %in[n]: numerical suffix of input n (1234 in IMG_1234.CR2)
- %of, %od: base name and directory of the output file (mask names only)
- %%: a single %

Inputs are sorted lexicographically; negative indexes count from the end.
"""

import pathlib
import re

from ..constants import DEFAULT_PATTERN_MULTI, DEFAULT_PATTERN_SINGLE

INPUT_TOKENS = re.compile(r"%(?:i(?P<kind>[fFdn])\[(?P<index>-?[0-9]+)\]|%)")
INPUT_OUTPUT_TOKENS = re.compile(r"%(?:o(?P<out>[fd])|i(?P<kind>[fFdn])\[(?P<index>-?[0-9]+)\]|%)")


def base_name(name: str) -> str:
    return pathlib.PurePath(name).name


def dir_name(name: str) -> str:
    return str(pathlib.PurePath(name).parent)


class FileNameManipulator:
    """Looks up parts of the input file names by sorted index."""

    def __init__(self, file_names):
        self.names = sorted(str(name) for name in file_names)

    def _adjust_index(self, i: int):
        if i < 0:
            i += len(self.names)
        return i if 0 <= i < len(self.names) else None

    def input_base_name(self, i: int) -> str:
        i = self._adjust_index(i)
        return "" if i is None else base_name(self.names[i])

    def input_base_name_no_ext(self, i: int) -> str:
        name = self.input_base_name(i)
        dot = name.rfind(".")
        return name if dot < 0 else name[:dot]

    def input_dir_name(self, i: int) -> str:
        i = self._adjust_index(i)
        return "" if i is None else dir_name(self.names[i])

    def input_number_suffix(self, i: int) -> str:
        return re.search(r"[0-9]*$", self.input_base_name_no_ext(i)).group()


def replace_arguments(pattern: str, file_names, out_file_name: str = "") -> str:
    """
    Expand the tokens of `pattern`.

    Output tokens are only recognised when `out_file_name` is given.
    Replacement text is never scanned again for tokens.

    Args:
        pattern: Template string
        file_names: Input file names of the set
        out_file_name: Already resolved output file name, if any

    Returns:
        str: The expanded string
    """
    regex = INPUT_OUTPUT_TOKENS if out_file_name else INPUT_TOKENS
    fnm = FileNameManipulator(file_names)
    lookups = {
        "f": fnm.input_base_name,
        "F": fnm.input_base_name_no_ext,
        "d": fnm.input_dir_name,
        "n": fnm.input_number_suffix,
    }

    result = []
    offset = 0
    for match in regex.finditer(pattern):
        result.append(pattern[offset:match.start()])
        offset = match.end()
        if match.group("kind"):
            result.append(lookups[match.group("kind")](int(match.group("index"))))
        elif out_file_name and match.group("out"):
            if match.group("out") == "f":
                result.append(base_name(out_file_name))
            else:
                result.append(dir_name(out_file_name))
        else:
            result.append("%")
    result.append(pattern[offset:])
    return "".join(result)


def build_output_file_name(file_names, extension: str = ".dng") -> str:
    """Default output name: first and last input of the set, in the last input's folder."""
    pattern = DEFAULT_PATTERN_MULTI if len(file_names) > 1 else DEFAULT_PATTERN_SINGLE
    return replace_arguments(pattern, file_names) + extension


def ensure_extension(file_name: str, extension: str) -> str:
    """Append `extension` unless the name already ends with it."""
    if file_name.lower().endswith(extension.lower()):
        return file_name
    return file_name + extension

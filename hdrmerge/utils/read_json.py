import json
import pathlib
import re

# A valid JSON escape, or any other lone backslash
ESCAPES = re.compile(r'\\(["\\/bfnrt]|u[0-9a-fA-F]{4})|\\')


def _fix_backslashes(text: str) -> str:
    """Turn backslashes that are not JSON escapes (pasted Windows paths) into slashes."""
    return ESCAPES.sub(lambda m: m.group(0) if m.group(1) else "/", text)


def read_json(fp: pathlib.Path) -> dict:
    with fp.open("r") as f:
        s = _fix_backslashes(f.read())
        try:
            return json.loads(s)
        except json.JSONDecodeError as ex:
            raise RuntimeError("Error reading JSON from %s: %s" % (fp, ex))

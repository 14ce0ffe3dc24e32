from __future__ import annotations

from pathlib import Path
from typing import Dict, Union


def load_class_names(labels_path: Union[str, Path]) -> Dict[int, str]:
    """
    Load the class id -> name table.

    Two formats are accepted:

    - plain text, one name per line, id = line number (`classes.txt`)
    - the lightweight `metadata.yaml` mapping:

        names:
          0: person
          1: bicycle
          ...

    YAML is parsed by hand to avoid a PyYAML dependency.
    """

    with open(labels_path, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()

    if any(line.strip() == "names:" for line in lines):
        return _parse_names_mapping(lines)

    # Line numbers are ids, so blank lines in the middle still count.
    while lines and not lines[-1].strip():
        lines.pop()
    return {i: line.strip() for i, line in enumerate(lines)}


def _parse_names_mapping(lines) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right

    return names

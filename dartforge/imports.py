"""
imports.py — The leading import/export/part block of a Dart file.
Reads the block, formats it into canonical groups and tracks the imports the
generator requires.
"""

import re
from typing import Optional

from dartforge.config import ProjectInfo
from dartforge.text_utils import are_strict_equal, is_blank

_DIRECTIVES = ("import", "export", "part")
_URI = re.compile(r"""['"]([^'"]+)['"]""")


def _uri_of(directive: str) -> Optional[str]:
    m = _URI.search(directive)
    return m.group(1) if m else None


def _block_comment_end(lines, start: int) -> int:
    """Index of the line closing the ``/* ... */`` comment opened on ``lines[start]``."""
    offset = lines[start].find("/*") + 2
    for i in range(start, len(lines)):
        if "*/" in lines[i][offset if i == start else 0:]:
            return i
    return len(lines) - 1


class DartImports:
    def __init__(self, text: str, project: Optional[ProjectInfo] = None):
        self.text = text
        self.project = project or ProjectInfo()
        self.values = []
        self.start_at_line = None
        self.end_at_line = None
        self.header_end_line = 0
        self.raw_imports = ""
        self._read_imports()

    def _read_imports(self):
        lines = self.text.split("\n")
        # Last line of a leading comment run; it joins the header only when a
        # blank line or a library directive follows it.
        comment_end = 0
        i = 0
        while i < len(lines):
            line = lines[i].strip()
            if line.startswith(_DIRECTIVES):
                self.values.append(line)
                self.raw_imports += line + "\n"
                if self.start_at_line is None:
                    self.start_at_line = i + 1
                self.end_at_line = i + 1
                comment_end = 0
            elif is_blank(line):
                if comment_end:
                    self.header_end_line = comment_end
                    comment_end = 0
            elif self.values:
                break
            elif line.startswith("library"):
                self.header_end_line = i + 1
                comment_end = 0
            elif line.startswith("//"):
                comment_end = i + 1
            elif line.startswith("/*"):
                i = _block_comment_end(lines, i)
                comment_end = i + 1
            else:
                break
            i += 1

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def has_imports(self) -> bool:
        return len(self.values) > 0

    @property
    def has_previous_imports(self) -> bool:
        return self.start_at_line is not None and self.end_at_line is not None

    @property
    def has_export_declaration(self) -> bool:
        return re.search(r"^export ", self.formatted, re.M) is not None

    @property
    def has_import_declaration(self) -> bool:
        return re.search(r"^import ", self.formatted, re.M) is not None

    @property
    def did_change(self) -> bool:
        return not are_strict_equal(self.raw_imports, self.formatted)

    # ── Formatting ────────────────────────────────────────────────────────

    @property
    def formatted(self) -> str:
        """Canonical block: dart, package, own package, relative, exports, parts."""
        if not self.has_imports:
            return ""

        workspace = self.project.name
        dart_imports, package_imports, local_imports = [], [], []
        relative_imports, exports, parts = [], [], []

        for imp in self.values:
            if imp.startswith("export"):
                exports.append(imp)
            elif imp.startswith("part"):
                parts.append(imp)
            elif "dart:" in imp:
                dart_imports.append(imp)
            elif workspace and f"package:{workspace}/" in imp:
                local_imports.append(imp)
            elif "package:" in imp:
                package_imports.append(imp)
            else:
                relative_imports.append(imp)

        groups = [dart_imports, package_imports, local_imports, relative_imports, exports, parts]
        return "\n\n".join("\n".join(sorted(g)) for g in groups if g)

    # ── Required imports ──────────────────────────────────────────────────

    def includes(self, imp: str) -> bool:
        uri = _uri_of(imp)
        return any(_uri_of(v) == uri for v in self.values if v.startswith("import"))

    def push(self, imp: str):
        if imp not in self.values:
            self.values.append(imp)

    def has_at_least_one_import(self, uris) -> bool:
        for uri in uris:
            directive = f"import '{uri}';"
            if directive in self.text or self.includes(directive):
                return True
        return False

    def requires_import(self, imp: str, valid_overrides=()):
        directive = imp if imp.startswith("import") else f"import '{imp}';"
        if not self.includes(directive) and not self.has_at_least_one_import(valid_overrides):
            self.values.append(directive)

    def merge(self, other: "DartImports"):
        for imp in other.values:
            if imp.startswith("import"):
                if not self.includes(imp):
                    self.values.append(imp)
            else:
                self.push(imp)

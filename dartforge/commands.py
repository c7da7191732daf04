"""
commands.py — Command layer between the HTTP API / file watcher and the core.
Each command takes the document text plus explicit Settings and ProjectInfo;
user interaction (class choice, override confirmation, separate-files
question) and progress reporting are injected as callables.
"""

import os
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from dartforge.config import ProjectInfo, Settings
from dartforge.dart_parser import parse_dart_classes
from dartforge.edit_planner import TextEdit, apply_edits, class_replacement, plan_edits
from dartforge.file_writer import overwrite_file, read_dart_file, write_dart_file
from dartforge.imports import DartImports
from dartforge.json_import import generated_type_count, read_json_classes
from dartforge.member_gen import SERIALIZATION_KEYS, DataClassGenerator
from dartforge.text_utils import create_file_name

NO_CLASSES = "No convertable dart classes were detected!"
NO_CLASSES_SELECTED = "No classes selected!"
CANCELED = "Canceled!"
COMMIT_PAUSE = 0.12


class CommandError(ValueError):
    pass


def no_changes_message(names) -> str:
    if len(names) == 1:
        return f"No changes detected for class {names[0]}"
    return f"No changes detected for classes {', '.join(names)}"


def enum_warnings(classes) -> list:
    """Classes whose encoding relies on ``// enum`` marker comments."""
    warnings = []
    for clazz in classes:
        names = [p.name for p in clazz.enum_fields]
        if names:
            warnings.append(
                f"{clazz.name}: {', '.join(names)} encoded as enum index because of a "
                f"'// enum' comment; verify the field types are enums."
            )
    return warnings


# ── Data class generation ─────────────────────────────────────────────────

@dataclass
class GenerationResult:
    classes: list = field(default_factory=list)
    edits: list = field(default_factory=list)
    text: str = ""
    issues: list = field(default_factory=list)
    unchanged: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    cancelled: bool = False
    message: Optional[str] = None

    @property
    def changed(self) -> bool:
        return len(self.edits) > 0

    def to_dict(self):
        return {
            "classes": [c.name for c in self.classes],
            "edits": [e.to_dict() for e in self.edits],
            "text": self.text,
            "changed": self.changed,
            "issues": self.issues,
            "unchanged": self.unchanged,
            "info": no_changes_message(self.unchanged) if self.unchanged else None,
            "warnings": self.warnings,
            "cancelled": self.cancelled,
            "message": self.message,
        }


def generate_data_class(text: str, settings: Optional[Settings] = None,
                        project: Optional[ProjectInfo] = None,
                        choose: Optional[Callable] = None,
                        confirm: Optional[Callable] = None) -> GenerationResult:
    """
    Generate data-class members for the classes of ``text``.

    ``choose(names) -> names | None`` narrows the classes when there are two
    or more; ``confirm(class_name, member) -> bool | None`` is asked for
    every replacement when ``override.manual`` is set. None cancels.
    """
    settings = settings or Settings.from_dict()
    project = project or ProjectInfo()

    classes = parse_dart_classes(text, settings.get("json.key_format"))
    if not classes:
        raise CommandError(NO_CLASSES)

    if len(classes) >= 2 and choose is not None:
        chosen = choose([c.name for c in classes])
        if not chosen:
            return GenerationResult(text=text, cancelled=True, message=NO_CLASSES_SELECTED)
        classes = [c for c in classes if c.name in chosen]

    generator = DataClassGenerator(text, settings, project, classes=classes)

    if settings.get("override.manual") and confirm is not None:
        for clazz in classes:
            if not clazz.is_valid or not clazz.to_replace:
                continue
            accepted = []
            for part in clazz.to_replace:
                answer = confirm(clazz.name, part.name)
                if answer is None:
                    return GenerationResult(text=text, cancelled=True, message=CANCELED)
                if answer:
                    accepted.append(part)
            clazz.to_replace = accepted

    edits = plan_edits(classes, generator.imports)
    return GenerationResult(
        classes=classes,
        edits=edits,
        text=apply_edits(text, edits),
        issues=[c.issue for c in classes if not c.is_valid],
        unchanged=[c.name for c in classes if c.is_valid and not c.did_change],
        warnings=enum_warnings(c for c in classes if c.is_valid),
    )


def regenerate_file(file_path: str, settings: Optional[Settings] = None,
                    project: Optional[ProjectInfo] = None) -> GenerationResult:
    """Run generation on a file and write it back when anything changed."""
    text = read_dart_file(file_path)
    result = generate_data_class(text, settings, project)
    if result.changed and result.text != text:
        overwrite_file(file_path, result.text)
    return result


def sort_imports(text: str, project: Optional[ProjectInfo] = None) -> list:
    imports = DartImports(text, project)
    if not imports.has_previous_imports or not imports.did_change:
        return []
    return [TextEdit(imports.start_at_line, imports.end_at_line, imports.formatted)]


# ── Quick fixes ───────────────────────────────────────────────────────────

@dataclass
class QuickFix:
    title: str
    part: Optional[str]
    edits: list

    def to_dict(self):
        return {"title": self.title, "part": self.part, "edits": [e.to_dict() for e in self.edits]}


def _imports_fix(text: str, line: int, project: ProjectInfo) -> Optional[QuickFix]:
    imports = DartImports(text, project)
    if not imports.has_previous_imports or not imports.did_change:
        return None
    if not imports.start_at_line <= line <= imports.end_at_line:
        return None

    title = "Sort imports"
    if imports.has_import_declaration and imports.has_export_declaration:
        title = "Sort imports/exports"
    elif imports.has_export_declaration:
        title = "Sort exports"
    return QuickFix(title, None, sort_imports(text, project))


def _part_fix(text: str, settings: Settings, project: ProjectInfo, class_name: str,
              part: str, title: str) -> Optional[QuickFix]:
    generator = DataClassGenerator(text, settings, project, part=part)
    for clazz in generator.classes:
        if clazz.name == class_name and clazz.did_change:
            return QuickFix(title, part, plan_edits([clazz], generator.imports))
    return None


def quick_fixes(text: str, line: int, settings: Optional[Settings] = None,
                project: Optional[ProjectInfo] = None) -> list:
    """Code actions available at a 1-based line of the document."""
    settings = settings or Settings.from_dict()
    project = project or ProjectInfo()
    if not settings.get("quick_fixes"):
        return []

    fixes = [_imports_fix(text, line, project)]

    generator = DataClassGenerator(text, settings, project)
    clazz = next(
        (c for c in generator.classes
         if c.has_ending and c.starts_at_line <= line <= c.ends_at_line),
        None,
    )
    if clazz is None or not clazz.is_valid:
        return [f for f in fixes if f is not None]

    at_declaration = line == clazz.starts_at_line
    in_properties = any(p.line == line for p in clazz.properties)
    in_constructor = (
        clazz.has_constructor
        and clazz.constr_starts_at_line <= line <= clazz.constr_ends_at_line
    )
    if not (at_declaration or in_properties or in_constructor):
        return [f for f in fixes if f is not None]

    def add(part, title):
        fixes.append(_part_fix(text, settings, project, clazz.name, part, title))

    if not clazz.is_widget and clazz.did_change:
        fixes.append(QuickFix("Generate data class", None, plan_edits([clazz], generator.imports)))

    if settings.get("constructor.enabled"):
        add("constructor", "Generate constructor")

    if not clazz.is_widget:
        if not clazz.is_abstract:
            if settings.get("init.enabled"):
                add("init", "Generate init factory")
            if settings.get("copyWith.enabled"):
                add("copyWith", "Generate copyWith")
            if settings.any_enabled(SERIALIZATION_KEYS):
                add("serialization", "Generate JSON serialization")

        if settings.get("toString.enabled"):
            add("toString", "Generate toString")

        if clazz.uses_equatable or settings.get("useEquatable"):
            add("useEquatable", "Generate Equatable")
        elif settings.any_enabled(["equality.enabled", "hashCode.enabled"]):
            add("equality", "Generate equality")

    return [f for f in fixes if f is not None]


# ── JSON to data classes ──────────────────────────────────────────────────

@dataclass
class JsonCommitResult:
    document: Optional[str] = None
    written: list = field(default_factory=list)
    failures: list = field(default_factory=list)
    files: list = field(default_factory=list)
    separate: bool = True
    cancelled: bool = False

    def to_dict(self):
        return {
            "document": self.document,
            "written": self.written,
            "failures": self.failures,
            "files": self.files,
            "separate": self.separate,
            "cancelled": self.cancelled,
        }


def _with_imports(imports: DartImports, body: str) -> str:
    formatted = imports.formatted
    return (f"{formatted}\n\n{body}" if formatted else body) + "\n"


def _add_generated_imports(generator: DataClassGenerator, classes: list):
    """Import the files of other generated classes this class refers to."""
    clazz = generator.classes[0]
    for prop in clazz.properties:
        raw_type = prop.collection_type.raw_type
        if raw_type != clazz.name and generated_type_count(classes, raw_type) == 1:
            generator.imports.push(f"import '{create_file_name(raw_type)}.dart';")


def commit_json(files: list, settings: Settings, project: ProjectInfo, separate: bool,
                directory: Optional[str] = None, progress: Optional[Callable] = None,
                writer: Callable = write_dart_file, pause: float = COMMIT_PAUSE) -> JsonCommitResult:
    """
    Generate every inferred class one file at a time. In separate mode the
    first class becomes the current document and the rest are written next
    to it; a failing write is reported and the remaining files continue.
    """
    if separate and len(files) > 1 and not directory:
        raise CommandError("A target directory is required to write separate files")

    result = JsonCommitResult(files=[f.name for f in files], separate=separate)
    classes = [f.clazz for f in files]
    merged_imports = DartImports("", project)
    bodies = []
    total = len(files)

    for i, dart_file in enumerate(files):
        generator = DataClassGenerator(dart_file.content, settings, project, classes=[dart_file.clazz])
        if separate:
            _add_generated_imports(generator, classes)

        if progress is not None:
            progress(100 / total, f"Creating file {dart_file.name}...")

        try:
            if separate:
                content = _with_imports(generator.imports, class_replacement(dart_file.clazz))
                if i == 0:
                    result.document = content
                else:
                    result.written.append(writer(content, dart_file.name, directory))
            else:
                merged_imports.merge(generator.imports)
                bodies.append(class_replacement(dart_file.clazz))
        except OSError as e:
            print(f"[DartForge] Error processing {dart_file.name}: {e}")
            result.failures.append({"file": dart_file.name, "error": str(e)})
            continue

        if pause and i < total - 1:
            time.sleep(pause)

    if not separate:
        result.document = _with_imports(merged_imports, "\n\n".join(bodies))

    return result


def generate_json_data_class(json_text: str, name: str, settings: Optional[Settings] = None,
                             project: Optional[ProjectInfo] = None,
                             directory: Optional[str] = None,
                             separate: Optional[bool] = None,
                             ask_separate: Optional[Callable] = None,
                             progress: Optional[Callable] = None,
                             writer: Callable = write_dart_file,
                             pause: float = COMMIT_PAUSE) -> JsonCommitResult:
    """
    Infer classes from ``json_text`` rooted at ``name`` and commit them.
    Raises JsonImportError for malformed input before anything is written.
    """
    settings = settings or Settings.from_dict()
    project = project or ProjectInfo()

    if not name:
        return JsonCommitResult(cancelled=True)

    files = read_json_classes(json_text, name)
    if not files:
        raise CommandError(NO_CLASSES)

    if separate is None:
        separate = True
        if len(files) >= 2:
            policy = settings.get("json.separate")
            if policy == "ask" and ask_separate is not None:
                answer = ask_separate()
                if answer is None:
                    return JsonCommitResult(files=[f.name for f in files], cancelled=True)
                separate = bool(answer)
            elif policy != "ask":
                separate = policy == "separate"

    if directory is not None:
        directory = os.path.abspath(directory)

    return commit_json(files, settings, project, separate, directory, progress, writer, pause)

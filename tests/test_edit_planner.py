"""
Tests for dartforge/edit_planner.py
"""

import pytest

from dartforge.dart_parser import parse_dart_classes
from dartforge.edit_planner import TextEdit, apply_edits, import_edit, plan_edits
from dartforge.imports import DartImports


class TestApplyEdits:
    def test_replace_and_insert(self):
        text = "a\nb\nc\nd"
        edits = [TextEdit(2, 3, "B\nC\nC2"), TextEdit(1, 0, "head")]
        assert apply_edits(text, edits) == "head\na\nB\nC\nC2\nd"

    def test_edits_apply_bottom_up(self):
        text = "1\n2\n3\n4"
        edits = [TextEdit(1, 1, "one\nuno"), TextEdit(4, 4, "four")]
        assert apply_edits(text, edits) == "one\nuno\n2\n3\nfour"

    def test_overlapping_edits_are_rejected(self):
        with pytest.raises(ValueError):
            apply_edits("a\nb\nc\nd", [TextEdit(1, 3, "x"), TextEdit(3, 4, "y")])

    def test_insert_flag(self):
        assert TextEdit(3, 2, "x").is_insert
        assert not TextEdit(3, 3, "x").is_insert


class TestPlanEdits:
    def test_unchanged_class_yields_no_edit(self, person_source):
        classes = parse_dart_classes(person_source)
        assert plan_edits(classes) == []

    def test_new_constructor_follows_last_field(self, person_source):
        clazz = parse_dart_classes(person_source)[0]
        clazz.new_constr = "  Person(this.name, this.age);\n"
        clazz.constr_different = True
        edits = plan_edits([clazz])
        assert len(edits) == 1
        assert (edits[0].start_line, edits[0].end_line) == (1, 4)
        assert edits[0].text == (
            "class Person {\n"
            "  final String name;\n"
            "  final int age;\n"
            "\n"
            "  Person(this.name, this.age);\n"
            "}"
        )

    def test_declaration_rewritten_only_when_changed(self, person_source):
        clazz = parse_dart_classes(person_source)[0]
        clazz.superclass = "Equatable"
        clazz.declaration_changed = True
        edit = plan_edits(clazz)[0]
        assert edit.text.startswith("class Person extends Equatable {\n")

    def test_invalid_classes_are_skipped(self):
        clazz = parse_dart_classes("class Empty {\n}\n")[0]
        clazz.to_insert = "\n  x\n"
        assert plan_edits([clazz]) == []


class TestImportEdit:
    def test_replaces_existing_block(self):
        imports = DartImports("import 'dart:io';\nimport 'dart:async';\n\nclass A {}\n")
        edit = import_edit(imports)
        assert (edit.start_line, edit.end_line) == (1, 2)
        assert edit.text == "import 'dart:async';\nimport 'dart:io';"

    def test_inserts_after_header(self):
        text = "// Copyright\nlibrary orders;\n\nclass A {}\n"
        imports = DartImports(text)
        imports.requires_import("dart:convert")
        edit = import_edit(imports)
        assert edit.is_insert
        assert apply_edits(text, [edit]) == (
            "// Copyright\nlibrary orders;\n\nimport 'dart:convert';\n\nclass A {}\n"
        )

    def test_doc_comment_stays_on_its_class(self):
        text = "/// A person.\nclass Person {}\n"
        imports = DartImports(text)
        imports.requires_import("dart:convert")
        assert apply_edits(text, [import_edit(imports)]) == (
            "import 'dart:convert';\n\n/// A person.\nclass Person {}\n"
        )

    def test_blank_line_after_library_directive(self):
        text = "library orders;\nclass A {}\n"
        imports = DartImports(text)
        imports.requires_import("dart:convert")
        assert apply_edits(text, [import_edit(imports)]) == (
            "library orders;\n\nimport 'dart:convert';\n\nclass A {}\n"
        )

    def test_no_edit_when_block_is_sorted(self):
        assert import_edit(DartImports("import 'dart:io';\n\nclass A {}\n")) is None

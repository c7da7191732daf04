"""
Tests for dartforge/text_utils.py
"""

from dartforge.text_utils import (
    are_strict_equal, camel_case, create_file_name, includes_one, indent,
    remove_end, remove_start, snake_case, split_keeping_generics, to_var_name,
    var_to_key,
)


class TestAffixes:
    def test_remove_end(self):
        assert remove_end("name;", ";") == "name"
        assert remove_end("name", ";") == "name"

    def test_remove_end_list_trims_between(self):
        assert remove_end(" a, b } ", ["}", ","]) == "a, b"

    def test_remove_start_list(self):
        assert remove_start("  { this.a, }", ["{", "["]) == "this.a, }"


class TestIndent:
    def test_every_line_indented_with_trailing_newline(self):
        assert indent("a\nb") == "  a\n  b\n"

    def test_strict_equal_ignores_whitespace(self):
        assert are_strict_equal("a  b\n c", "abc")
        assert not are_strict_equal("ab", "abd")


class TestIncludes:
    def test_word_based(self):
        assert includes_one("static int x;", ["static"])
        assert not includes_one("int statics;", ["static"])

    def test_substring(self):
        assert includes_one("int get x => 1;", ["=>"], word_based=False)


class TestNames:
    def test_separators_become_camel_case(self):
        assert to_var_name("first-name") == "firstName"
        assert to_var_name("user id") == "userId"

    def test_keyword_gets_underscore(self):
        assert to_var_name("class") == "class_"

    def test_leading_digit(self):
        assert to_var_name("1st") == "n1st"

    def test_key_formats(self):
        assert snake_case("firstName") == "first_name"
        assert camel_case("first_name") == "firstName"
        assert var_to_key("firstName", "snake_case") == "first_name"
        assert var_to_key("firstName") == "firstName"

    def test_file_name(self):
        assert create_file_name("UserProfile") == "user_profile"
        assert create_file_name("User") == "user"


class TestSplitKeepingGenerics:
    def test_generic_bound_stays_with_name(self):
        words = split_keeping_generics("class Foo<T extends Bar> extends Baz {")
        assert words == ["class", "Foo<T extends Bar>", "extends", "Baz"]

    def test_map_type(self):
        words = split_keeping_generics("class A extends Base<Map<String, int>> {")
        assert words == ["class", "A", "extends", "Base<Map<String, int>>"]

    def test_without_brace(self):
        assert split_keeping_generics("class A with B") == ["class", "A", "with", "B"]

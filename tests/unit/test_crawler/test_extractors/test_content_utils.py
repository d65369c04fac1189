"""
Unit tests for crawler.extractors.content_utils.
"""
import pytest

from crawler.extractors.content_utils import clean_content_for_ai, file_name_from_url, is_binary_content


class TestBinaryDetection:

    @pytest.mark.unit
    def test_pdf_header(self):
        assert is_binary_content("%PDF-1.7 binary stream follows")

    @pytest.mark.unit
    def test_many_control_characters(self):
        assert is_binary_content("abc" + "\x01\x02" * 30)

    @pytest.mark.unit
    def test_whitespace_controls_do_not_count(self):
        assert not is_binary_content("ligne\n\tsuivante\r\n" * 40)

    @pytest.mark.unit
    @pytest.mark.parametrize("prefix", ["PK\x03\x04", "\x89PNG", "\x1f\x8b", "Rar!"])
    def test_magic_numbers(self, prefix):
        assert is_binary_content(prefix + "rest of payload")

    @pytest.mark.unit
    def test_short_content_is_never_binary(self):
        assert not is_binary_content("%PDF")
        assert not is_binary_content("")

    @pytest.mark.unit
    def test_plain_text(self):
        assert not is_binary_content("# Avis aux importateurs\n\nNouveaux droits de douane.")


class TestCleaning:

    @pytest.mark.unit
    def test_control_chars_and_whitespace(self):
        assert clean_content_for_ai("  a\x00b \n\n  c\t d  ") == "a b c d"

    @pytest.mark.unit
    def test_truncation(self):
        assert len(clean_content_for_ai("x" * 100, max_length=10)) == 10

    @pytest.mark.unit
    def test_file_name(self):
        assert file_name_from_url("https://example.org/docs/Tarif%202024.pdf?v=2") == "Tarif 2024.pdf"
        assert file_name_from_url("https://example.org/") == "example.org"
        assert file_name_from_url("") == "Document"

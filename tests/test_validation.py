"""Tests for input validation — prompts, names, signup batches, ids."""

from datetime import datetime

from promptrelay.core.validation import (
    DEFAULT_THEME,
    ValidationResult,
    merge_validation_results,
    validate_file_name,
    validate_participant_name,
    validate_participants,
    validate_prompt,
    validate_session_id,
    validate_session_name,
    validate_theme,
)


class TestValidatePrompt:
    def test_trims_and_accepts(self):
        result = validate_prompt("  make a clicker  ")
        assert result.valid is True
        assert result.sanitized == "make a clicker"

    def test_blank_rejected(self):
        assert validate_prompt("   ").valid is False
        assert validate_prompt(None).valid is False

    def test_length_limit_after_trim(self):
        assert validate_prompt("x" * 1000).valid is True
        assert validate_prompt("  " + "x" * 1000 + "  ").valid is True
        result = validate_prompt("x" * 1001)
        assert result.valid is False
        assert "1000" in result.message


class TestValidateParticipantName:
    def test_plain_name(self):
        assert validate_participant_name("Aki").sanitized == "Aki"

    def test_unicode_letters_allowed(self):
        assert validate_participant_name("ゆい").valid is True
        assert validate_participant_name("José-Luis_2").valid is True

    def test_symbols_rejected(self):
        assert validate_participant_name("Aki!").valid is False
        assert validate_participant_name("a/b").valid is False

    def test_length_limit(self):
        assert validate_participant_name("a" * 50).valid is True
        assert validate_participant_name("a" * 51).valid is False


class TestValidateParticipants:
    def test_comma_separated(self):
        result = validate_participants("Aki, Ren ,Yui")
        assert result.valid is True
        assert result.sanitized == ["Aki", "Ren", "Yui"]

    def test_blank_entries_dropped(self):
        assert validate_participants("Aki,,  ,Ren").sanitized == ["Aki", "Ren"]

    def test_list_input(self):
        assert validate_participants(["Aki", " Ren "]).sanitized == ["Aki", "Ren"]

    def test_empty_input(self):
        assert validate_participants("").valid is False
        assert validate_participants(" , , ").valid is False
        assert validate_participants([]).valid is False

    def test_at_most_ten(self):
        names = ",".join(f"P{i}" for i in range(10))
        assert validate_participants(names).valid is True
        names = ",".join(f"P{i}" for i in range(11))
        assert validate_participants(names).valid is False

    def test_first_duplicate_named(self):
        result = validate_participants("Aki,Ren,Aki,Ren")
        assert result.valid is False
        assert result.message == "Duplicate participant name: Aki"

    def test_duplicates_are_case_sensitive(self):
        assert validate_participants("Aki,aki").valid is True

    def test_invalid_member_reported(self):
        result = validate_participants("Aki,R@n")
        assert result.valid is False
        assert "R@n" in result.message


class TestValidateIds:
    def test_session_id(self):
        assert validate_session_id("session_20250101120000_abc123xyz").valid is True
        assert validate_session_id("session_2025_abc").valid is False
        assert validate_session_id("session_20250101120000_ABC").valid is False
        assert validate_session_id("../etc").valid is False

    def test_session_mode_file_name(self):
        assert validate_file_name("game_001_Aki.html").valid is True
        assert validate_file_name("game_012_Mary Ann.html").valid is True

    def test_flat_mode_file_name(self):
        assert validate_file_name("game_20250101120000_Yui.html").valid is True

    def test_traversal_rejected(self):
        assert validate_file_name("../game_001_Aki.html").valid is False
        assert validate_file_name("game_001_Aki.html/..").valid is False
        assert validate_file_name("sub\\game_001_Aki.html").valid is False

    def test_other_names_rejected(self):
        assert validate_file_name("session.json").valid is False
        assert validate_file_name("game_1_Aki.html").valid is False


class TestSoftFields:
    def test_theme_defaults(self):
        assert validate_theme(None).sanitized == DEFAULT_THEME
        assert validate_theme("  ").sanitized == DEFAULT_THEME

    def test_theme_too_long(self):
        assert validate_theme("t" * 200).valid is True
        assert validate_theme("t" * 201).valid is False

    def test_session_name_defaults_to_timestamp(self):
        now = datetime(2025, 1, 2, 3, 4, 5)
        assert validate_session_name("", now=now).sanitized == "Session 2025-01-02 03:04:05"

    def test_session_name_too_long(self):
        assert validate_session_name("n" * 100).valid is True
        assert validate_session_name("n" * 101).valid is False


class TestMerge:
    def test_all_valid(self):
        merged = merge_validation_results([ValidationResult(True), ValidationResult(True)])
        assert merged.valid is True

    def test_messages_joined(self):
        merged = merge_validation_results([
            validate_prompt(""),
            ValidationResult(True),
            validate_participant_name("x!"),
        ])
        assert merged.valid is False
        assert merged.message == (
            "A prompt is required, Participant name contains unsupported characters: x!"
        )

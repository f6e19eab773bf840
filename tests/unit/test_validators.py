"""
Unit tests for input validators and sanitization.

Tests cover:
- Password strength rules and their messages
- File upload size and type checks
- Angle bracket stripping on stored text
- Sanitization inside request schemas
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from api.src.models.screen import ShowScheduleRequest
from api.src.security import (
    PasswordRequirements,
    sanitize_input,
    sanitize_payload,
    validate_file_upload,
    validate_password,
)


@dataclass
class FakeUpload:
    """Stand-in for an uploaded file."""

    size: Optional[int]
    content_type: Optional[str]


# ============================================================================
# PASSWORDS
# ============================================================================


class TestValidatePassword:
    """Test password rules."""

    def test_valid_password(self):
        """Test a six character password with a digit passes the default rules."""
        result = validate_password("abcde1")
        assert result.valid is True
        assert result.message is None

    def test_too_short(self):
        """Test the minimum length rule."""
        result = validate_password("ab1")
        assert result.valid is False
        assert result.message == "Password must be at least 6 characters long"

    def test_requires_number(self):
        """Test the digit rule."""
        result = validate_password("abcdefgh")
        assert result.message == "Password must contain at least one number"

    @pytest.mark.parametrize("password", ["abcde\u0663", "abcde\uff11", "abcde\u00b2"])
    def test_non_ascii_digits_do_not_count(self, password):
        """Test only 0-9 satisfy the digit rule."""
        assert validate_password(password).message == "Password must contain at least one number"

    def test_length_checked_before_number(self):
        """Test the first failing rule wins."""
        assert validate_password("abc").message == "Password must be at least 6 characters long"

    @pytest.mark.parametrize(
        "requirements,password,message",
        [
            (PasswordRequirements(require_uppercase=True), "abcde1", "Password must contain at least one uppercase letter"),
            (PasswordRequirements(require_lowercase=True), "ABCDE1", "Password must contain at least one lowercase letter"),
            (PasswordRequirements(require_special_chars=True), "abcde1", "Password must contain at least one special character"),
        ],
    )
    def test_optional_rules(self, requirements, password, message):
        """Test rules that are off by default."""
        assert validate_password(password, requirements).message == message

    def test_all_rules_satisfied(self):
        """Test a password meeting every optional rule."""
        strict = PasswordRequirements(
            min_length=8, require_uppercase=True, require_lowercase=True, require_special_chars=True
        )
        assert validate_password("Secret#2024", strict).valid is True

    def test_max_length_not_enforced(self):
        """Test the maximum length is advisory only."""
        assert validate_password("a1" * 100).valid is True


# ============================================================================
# FILE UPLOADS
# ============================================================================


class TestValidateFileUpload:
    """Test upload size and type rules."""

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/png", "application/pdf"])
    def test_allowed_types(self, content_type):
        """Test every allowed media type passes."""
        assert validate_file_upload(FakeUpload(1024, content_type)).valid is True

    def test_rejected_type(self):
        """Test a disallowed media type is reported by name."""
        result = validate_file_upload(FakeUpload(1024, "image/gif"))
        assert result.valid is False
        assert result.message == "File type image/gif is not allowed"

    def test_oversized_file(self):
        """Test files over 10MB are rejected."""
        result = validate_file_upload(FakeUpload(10 * 1024 * 1024 + 1, "image/png"))
        assert result.message == "File size must be less than 10MB"

    def test_exact_limit_allowed(self):
        """Test a file of exactly 10MB passes."""
        assert validate_file_upload(FakeUpload(10 * 1024 * 1024, "image/png")).valid is True

    def test_size_checked_before_type(self):
        """Test an oversized file of a bad type reports the size."""
        result = validate_file_upload(FakeUpload(20 * 1024 * 1024, "text/plain"))
        assert result.message == "File size must be less than 10MB"

    def test_unknown_size(self):
        """Test a file without a known size is checked on type only."""
        assert validate_file_upload(FakeUpload(None, "image/png")).valid is True


# ============================================================================
# SANITIZATION
# ============================================================================


class TestSanitization:
    """Test angle bracket stripping."""

    def test_strips_brackets_and_whitespace(self):
        """Test markup characters and surrounding whitespace are removed."""
        assert sanitize_input("  <script>alert(1)</script>  ") == "scriptalert(1)/script"

    @pytest.mark.parametrize(
        "value",
        ["a <", "  <b> x ", "> <", "<<>>", " \t plain text \n", "a < b > c", "", "already clean"],
    )
    def test_idempotent(self, value):
        """Test sanitizing twice gives the same result as sanitizing once."""
        once = sanitize_input(value)
        assert sanitize_input(once) == once

    def test_brackets_removed_before_trimming(self):
        """Test whitespace exposed by a removed bracket is trimmed too."""
        assert sanitize_input("a <") == "a"
        assert sanitize_input("> b") == "b"

    def test_non_strings_pass_through(self):
        """Test numbers, booleans and None are untouched."""
        assert sanitize_input(42) == 42
        assert sanitize_input(True) is True
        assert sanitize_input(None) is None

    def test_nested_payload(self):
        """Test dicts and lists are sanitized recursively."""
        payload = {"title": "<b>Dune</b>", "cast": ["<i>A</i>", 3], "meta": {"note": " x> "}}
        assert sanitize_payload(payload) == {"title": "bDune/b", "cast": ["iA/i", 3], "meta": {"note": "x"}}

    def test_schema_sanitizes_input(self):
        """Test request schemas sanitize before validation."""
        request = ShowScheduleRequest.model_validate(
            {"movieId": "<abc>", "showtimes": ["<7:00 PM>"], "bookingDate": "2030-01-01"}
        )
        assert request.movie_id == "abc"
        assert request.showtimes == ["7:00 PM"]

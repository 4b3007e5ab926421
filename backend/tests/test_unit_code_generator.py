"""Unit tests for family code generation — no database required."""

import os
import re

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from carecircle.config import settings
from carecircle.services.code_service import CODE_ALPHABET, _generate_code, normalize_code


class TestFamilyCodeGeneration:
    def test_code_format(self):
        """Code should match MC-XXXXX."""
        code = _generate_code()
        assert re.match(r"^MC-[A-Z0-9]{5}$", code), f"Unexpected format: {code}"

    def test_code_uses_prefix_and_length_from_settings(self):
        code = _generate_code()
        assert code.startswith(settings.FAMILY_CODE_PREFIX)
        assert len(code) == len(settings.FAMILY_CODE_PREFIX) + settings.FAMILY_CODE_LENGTH

    def test_body_avoids_ambiguous_characters(self):
        for _ in range(200):
            body = _generate_code()[len(settings.FAMILY_CODE_PREFIX):]
            assert set(body) <= set(CODE_ALPHABET)
            assert not set(body) & set("01OIL")

    def test_codes_are_random(self):
        codes = {_generate_code() for _ in range(20)}
        assert len(codes) > 1, "All 20 generated codes are identical"


class TestNormalizeCode:
    def test_trims_and_uppercases(self):
        assert normalize_code("  mc-ab12c \n") == "MC-AB12C"

    def test_already_normal(self):
        assert normalize_code("MC-AB12C") == "MC-AB12C"

from __future__ import annotations

import random

import pytest

from config_manager import ApplicantConfig
from documents import ensure_document
from mapping import (
    DEGREE_NAME_FIELDS,
    IDENTITY_FIELDS,
    DataMapper,
    generate_random_email,
    generate_random_phone_number,
    is_valid_phone_number,
)


def test_ensure_document_creates_pdf_and_returns_absolute_path(tmp_path):
    target = tmp_path / "docs" / "dummy-document.pdf"

    path = ensure_document(str(target), "document")

    assert path == str(target.resolve())
    content = target.read_bytes()
    assert content.startswith(b"%PDF-1.4")
    assert content.rstrip().endswith(b"%%EOF")


def test_passport_document_carries_text_stream(tmp_path):
    path = ensure_document(str(tmp_path / "passport.pdf"), "passport")
    assert b"(PASSPORT DOCUMENT) Tj" in open(path, "rb").read()


def test_existing_document_is_kept_unless_overwrite(tmp_path):
    target = tmp_path / "mine.pdf"
    target.write_text("user file", encoding="utf-8")

    ensure_document(str(target), "document")
    assert target.read_text(encoding="utf-8") == "user file"

    ensure_document(str(target), "document", overwrite=True)
    assert target.read_bytes().startswith(b"%PDF")


def test_unknown_document_kind(tmp_path):
    with pytest.raises(ValueError):
        ensure_document(str(tmp_path / "x.pdf"), "visa")


def test_random_identities_have_expected_shape():
    rng = random.Random(42)
    for _ in range(50):
        email = generate_random_email(rng)
        local, domain = email.split("@")
        assert domain == "example.com"
        assert local.startswith("user_") and len(local) == len("user_") + 8
        phone = generate_random_phone_number(rng)
        assert is_valid_phone_number(phone)
        assert phone[0] in "6789"


def test_phone_validation():
    assert is_valid_phone_number("9876543210")
    assert not is_valid_phone_number("5876543210")
    assert not is_valid_phone_number("987654321")
    assert not is_valid_phone_number("")


def test_value_for_field_exact_then_substring():
    mapper = DataMapper(ApplicantConfig(first_name="Jane", company_name="Acme"))
    assert mapper.value_for_field("firstName") == "Jane"
    assert mapper.value_for_field("x", "Company Name") == "Acme"
    assert mapper.value_for_field("applicant-firstName-input") == "Jane"
    assert mapper.value_for_field("unrelated", "Something else") is None


def test_map_fields_skips_empty_values():
    mapper = DataMapper(ApplicantConfig(middle_name=""))
    keys = [field.key for field in mapper.map_fields(IDENTITY_FIELDS)]
    assert "middleName" not in keys
    assert keys[0] == "firstName"

    degree = mapper.map_fields(DEGREE_NAME_FIELDS)
    assert all(not field.only_if_empty for field in degree)


def test_match_option_prefers_exact_then_synonym():
    mapper = DataMapper(ApplicantConfig())
    options = ["Female", "Male", "Prefer not to say"]

    assert mapper.match_option("gender", "male", options) == "Male"
    assert mapper.match_option("gender", "m", options) == "Male"
    assert mapper.match_option("gender", "woman", options) == "Female"


def test_match_option_substring_does_not_confuse_male_and_female():
    mapper = DataMapper(ApplicantConfig())
    assert mapper.match_option("gender", "Male", ["Female", "Male (M)"]) == "Male (M)"


def test_match_option_falls_back_to_first_option():
    mapper = DataMapper(ApplicantConfig())
    assert mapper.match_option("modeOfStudy", "Evening", ["Active Enrollment", "Part Time"]) == "Active Enrollment"
    assert mapper.match_option("modeOfStudy", "online", ["Active Enrollment", "Distance Learning"]) == "Distance Learning"
    assert mapper.match_option("gender", "Male", ["", "  "]) is None

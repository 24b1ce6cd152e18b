"""
mapping.py

This module maps applicant data from the configuration onto the form fields
of the DataFlow pages. It prepares the values for the filling process and
matches configured values against the options a dropdown actually offers.
"""

import random
import re
import string
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config_manager import ApplicantConfig

# Field mappings connect on-page field identifiers (names, ids, labels) to
# ApplicantConfig attributes.
FIELD_MAPPINGS = {
    'firstName': 'first_name',
    'first_name': 'first_name',
    'First Name': 'first_name',
    'middleName': 'middle_name',
    'middle_name': 'middle_name',
    'Middle Name': 'middle_name',
    'lastName': 'last_name',
    'last_name': 'last_name',
    'Last Name': 'last_name',
    'nationality': 'nationality_text',
    'salutation': 'salutation',
    'gender': 'gender',
    'profession': 'profession',
    'idNumber': 'id_number',
    'ID Number': 'id_number',
    'Company Name': 'company_name',
    'organization': 'university',
    'Department name': 'department',
    'Course Name': 'course',
    'Program Duration': 'program_duration',
    'Mode of Study': 'mode_of_study',
}

# Dropdown mappings translate configured values into the option labels the
# application shows.
DROPDOWN_MAPPINGS = {
    'gender': {
        'Male': ['male', 'm', 'man'],
        'Female': ['female', 'f', 'woman'],
        'Prefer not to say': ['na', 'n/a', 'decline', 'none'],
    },
    'salutation': {
        'Dr.': ['dr', 'doctor'],
        'Mr.': ['mr', 'mister'],
        'Ms.': ['ms'],
        'Mrs.': ['mrs'],
    },
    'modeOfStudy': {
        'Active Enrollment': ['active', 'enrolled', 'full time', 'full-time'],
        'Distance Learning': ['distance', 'online', 'remote'],
        'Part Time': ['part time', 'part-time'],
    },
}

@dataclass
class FieldDefinition:
    """Where a field lives on a page and which applicant value goes into it."""
    key: str
    label: str
    selectors: List[str] = field(default_factory=list)
    nth: int = 0
    only_if_empty: bool = True

@dataclass
class MappedField:
    """Represents a form field that has been mapped to data and is ready for filling."""
    key: str
    label: str
    value_to_fill: str
    selectors: List[str] = field(default_factory=list)
    nth: int = 0
    only_if_empty: bool = True

# Identity page inputs all share the "Type here" placeholder, so the
# position in the form is part of the lookup.
IDENTITY_FIELDS = [
    FieldDefinition('firstName', 'First Name', [
        'input[placeholder*="Type here"]',
        'input[name*="firstName"]',
        'input[name*="first_name"]',
        'input[id*="firstName"]',
        'input[id*="first_name"]',
    ], nth=0, only_if_empty=False),
    FieldDefinition('middleName', 'Middle Name', [
        'input[placeholder*="Type here"]',
        'input[name*="middleName"]',
        'input[name*="middle_name"]',
        'input[id*="middleName"]',
        'input[id*="middle_name"]',
    ], nth=1),
    FieldDefinition('lastName', 'Last Name', [
        'input[placeholder*="Type here"]',
        'input[name*="lastName"]',
        'input[name*="last_name"]',
        'input[id*="lastName"]',
        'input[id*="last_name"]',
    ], nth=2),
    FieldDefinition('nationality', 'Nationality', [
        'input[name*="nationality"]',
        'input[id*="nationality"]',
        'input[placeholder*="nation" i]',
    ], only_if_empty=False),
]

DEGREE_NAME_FIELDS = [
    FieldDefinition('firstName', 'First Name', [
        'label:has-text("First Name") ~ input',
        'input[placeholder*="First"]',
        'input[name*="first" i]',
    ], only_if_empty=False),
    FieldDefinition('middleName', 'Middle Name', [
        'label:has-text("Middle Name") ~ input',
        'input[placeholder*="Middle"]',
        'input[name*="middle" i]',
    ], only_if_empty=False),
    FieldDefinition('lastName', 'Last Name', [
        'label:has-text("Last Name") ~ input',
        'input[placeholder*="Last"]',
        'input[name*="last" i]',
    ], only_if_empty=False),
]


def generate_random_email(rng: Optional[random.Random] = None, domain: str = "example.com") -> str:
    """Random throwaway address in the form user_<8 chars>@domain"""
    rng = rng or random.Random()
    alphabet = string.ascii_lowercase + string.digits
    random_str = ''.join(rng.choice(alphabet) for _ in range(8))
    return f"user_{random_str}@{domain}"


def generate_random_phone_number(rng: Optional[random.Random] = None) -> str:
    """Random 10-digit Indian mobile number starting with 6, 7, 8 or 9"""
    rng = rng or random.Random()
    first_digit = rng.choice('6789')
    return first_digit + ''.join(str(rng.randint(0, 9)) for _ in range(9))


def is_valid_phone_number(value: str) -> bool:
    return bool(re.fullmatch(r'[6-9]\d{9}', value or ''))


class DataMapper:
    """
    Maps page fields to applicant data from the configuration.
    """

    def __init__(self, applicant: ApplicantConfig):
        self.applicant = applicant

    def map_fields(self, definitions: List[FieldDefinition]) -> List[MappedField]:
        """Resolve a value for every definition; unmapped fields are skipped."""
        mapped_fields = []
        for definition in definitions:
            value = self.value_for_field(definition.key, definition.label)
            if value is None or value == '':
                print(f"  ℹ️ Info: No applicant value configured for '{definition.label}'.")
                continue
            mapped_fields.append(MappedField(
                key=definition.key,
                label=definition.label,
                value_to_fill=value,
                selectors=list(definition.selectors),
                nth=definition.nth,
                only_if_empty=definition.only_if_empty,
            ))
        return mapped_fields

    def value_for_field(self, field_id: str, field_label: str = '') -> Optional[str]:
        """
        Finds the applicant value for a field using exact, then case-insensitive
        substring matching on the id and label.
        """
        for candidate in (field_id, field_label):
            if candidate in FIELD_MAPPINGS:
                return getattr(self.applicant, FIELD_MAPPINGS[candidate])

        field_id_lower = (field_id or '').lower()
        field_label_lower = (field_label or '').lower()
        for key, attribute in FIELD_MAPPINGS.items():
            key_lower = key.lower()
            if key_lower in field_id_lower or (field_label_lower and key_lower in field_label_lower):
                return getattr(self.applicant, attribute)

        return None

    def match_option(self, field_key: str, value: str, available_options: List[str]) -> Optional[str]:
        """
        Matches a configured value to one of the options a dropdown shows.
        """
        options = [option.strip() for option in available_options if option and option.strip()]
        if not options:
            return None

        value_lower = (value or '').strip().lower()

        # 1. Exact, case-insensitive match
        for option in options:
            if option.lower() == value_lower:
                return option

        # 2. Synonyms from DROPDOWN_MAPPINGS
        mappings: Dict[str, List[str]] = DROPDOWN_MAPPINGS.get(field_key, {})
        for standard_value, variations in mappings.items():
            if value_lower == standard_value.lower() or value_lower in variations:
                for option in options:
                    if option.lower() == standard_value.lower():
                        return option

        # 3. Substring match; "Male" must not match "Female"
        for option in options:
            if re.search(rf'\b{re.escape(value_lower)}\b', option.lower()):
                return option

        # 4. Fallback: first option
        print(f"  ⚠️ Warning: No match for '{value}' in '{field_key}'. Defaulting to first option.")
        return options[0]

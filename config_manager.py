#!/usr/bin/env python3
"""
Configuration Manager for DataFlow Verification Automation
Description:
Handles configuration loading from JSON files and environment variables,
validation, default values, and automation mode settings.
"""

import os
import json
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://app.staging.dataflowgroup.com"

@dataclass
class AutomationModeConfig:
    """Configuration for different automation modes"""
    headless: bool = False  # manual pauses need a visible browser
    slow_motion: int = 0  # milliseconds
    timeout: int = 30000  # milliseconds
    screenshot_on_failure: bool = True
    manual_pause_enabled: bool = True

@dataclass
class AutomationConfig:
    """Main automation configuration"""
    element_wait_timeout: int = 10000
    log_level: str = "INFO"
    enable_performance_monitoring: bool = True
    save_performance_report: bool = False
    screenshot_dir: str = "screenshots"
    take_step_screenshots: bool = True
    summary_file: str = "verification_summary.json"
    onboarding_wait_seconds: int = 180

@dataclass
class DataFlowConfig:
    """Target application and account settings"""
    base_url: str = DEFAULT_BASE_URL
    locale: str = "en"
    email: str = ""
    otp: str = "123456"
    auto_enter_otp: bool = False
    cookies_file: str = "cookies.json"
    session_max_age_hours: float = 24

    @property
    def signin_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.locale}/onboarding/signin"

    @property
    def dashboard_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.locale}/dashboard/home"

@dataclass
class ApplicantConfig:
    """Applicant data typed into the onboarding and document forms"""
    salutation: str = "Dr."
    first_name: str = "John"
    middle_name: str = "Michael"
    last_name: str = "Doe"
    nationality: str = "India"
    nationality_text: str = "Indian"
    profession: str = "Software"
    gender: str = "Male"
    id_number: str = "A12345678"
    company_name: str = "Automation company"
    university: str = "dry college"
    university_option: str = "dry college, bengaluru, india"
    department: str = "BE"
    course: str = "CSE"
    program_duration: str = "4"
    mode_of_study: str = "Active Enrollment"

@dataclass
class VerificationRequestConfig:
    """Choices made while creating a Verification Request"""
    country: str = "Bahrain"
    country_code: str = "BHR"
    authority: str = "National Health Regulatory Authority"
    authority_abbreviation: str = "NHRA"
    verification_reason: str = "Foreign Education Recognition"
    verification_type: str = "Fresh Graduates - Bahraini Nationals"
    payment_enabled: bool = True
    payment_method: str = "Card"

@dataclass
class DocumentConfig:
    """Files uploaded during the flow"""
    document_path: str = "dummy-document.pdf"
    passport_path: str = "dummy-passport.pdf"

@dataclass
class DataFlowAutomationConfig:
    """Complete configuration for DataFlow automation"""
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    automation_mode: AutomationModeConfig = field(default_factory=AutomationModeConfig)
    dataflow: DataFlowConfig = field(default_factory=DataFlowConfig)
    applicant: ApplicantConfig = field(default_factory=ApplicantConfig)
    verification: VerificationRequestConfig = field(default_factory=VerificationRequestConfig)
    documents: DocumentConfig = field(default_factory=DocumentConfig)

# JSON section name -> (attribute on DataFlowAutomationConfig, dataclass)
_SECTIONS = {
    'automation': ('automation', AutomationConfig),
    'automation_mode': ('automation_mode', AutomationModeConfig),
    'dataflow': ('dataflow', DataFlowConfig),
    'applicant': ('applicant', ApplicantConfig),
    'verification': ('verification', VerificationRequestConfig),
    'documents': ('documents', DocumentConfig),
}

class ConfigurationManager:
    """
    Manages configuration loading, validation, and default values
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = Path(config_dir)
        self.logger = logging.getLogger(f"{__name__}.ConfigurationManager")
        self._config: Optional[DataFlowAutomationConfig] = None

        # Default configuration file path
        self.main_config_file = self.config_dir / "automation_config.json"

    def load_configuration(self, config_file: Optional[str] = None) -> DataFlowAutomationConfig:
        """
        Load configuration from JSON files and environment variables
        """
        self.logger.info("Loading configuration from JSON files and environment variables")

        try:
            if config_file:
                config = self._load_from_json_file(Path(config_file))
            else:
                config = self._load_from_json_file(self.main_config_file)

            # Override with environment variables
            config = self._load_from_environment(config)

            self._validate_configuration(config)

            config = self._apply_default_values(config)

            self._config = config
            self.logger.info("Configuration loaded successfully")
            return config

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}")
            # Return default configuration as fallback
            self._config = self._get_default_configuration()
            return self._config

    def _load_from_json_file(self, config_path: Path) -> DataFlowAutomationConfig:
        """Load configuration from a single JSON file"""
        if not config_path.exists():
            self.logger.debug(f"Configuration file not found: {config_path}, using defaults")
            return DataFlowAutomationConfig()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)

            return self._parse_config_data(config_data)

        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in configuration file {config_path}: {e}")
            return DataFlowAutomationConfig()

    def _parse_config_data(self, config_data: Dict[str, Any]) -> DataFlowAutomationConfig:
        """Parse configuration data from JSON, ignoring unknown keys"""
        config = DataFlowAutomationConfig()

        for section, (attribute, section_class) in _SECTIONS.items():
            section_data = config_data.get(section)
            if not isinstance(section_data, dict):
                continue
            setattr(config, attribute, section_class(**{
                k: v for k, v in section_data.items()
                if k in section_class.__dataclass_fields__
            }))

        return config

    def _load_from_environment(self, config: DataFlowAutomationConfig) -> DataFlowAutomationConfig:
        """
        Override configuration with environment variables
        """
        # Automation mode settings
        config.automation_mode.headless = self._get_env_bool('AUTOMATION_HEADLESS', config.automation_mode.headless)
        config.automation_mode.slow_motion = self._get_env_int('AUTOMATION_SLOW_MOTION', config.automation_mode.slow_motion)
        config.automation_mode.timeout = self._get_env_int('AUTOMATION_TIMEOUT', config.automation_mode.timeout)
        config.automation_mode.screenshot_on_failure = self._get_env_bool('AUTOMATION_SCREENSHOT_ON_FAILURE', config.automation_mode.screenshot_on_failure)
        config.automation_mode.manual_pause_enabled = self._get_env_bool('AUTOMATION_MANUAL_PAUSE', config.automation_mode.manual_pause_enabled)

        # Automation settings
        config.automation.log_level = os.getenv('AUTOMATION_LOG_LEVEL', config.automation.log_level).upper()
        config.automation.screenshot_dir = os.getenv('AUTOMATION_SCREENSHOT_DIR', config.automation.screenshot_dir)
        config.automation.summary_file = os.getenv('AUTOMATION_SUMMARY_FILE', config.automation.summary_file)
        config.automation.onboarding_wait_seconds = self._get_env_int('ONBOARDING_WAIT_SECONDS', config.automation.onboarding_wait_seconds)

        # DataFlow settings
        config.dataflow.base_url = os.getenv('DATAFLOW_BASE_URL', config.dataflow.base_url)
        config.dataflow.email = os.getenv('DATAFLOW_EMAIL', config.dataflow.email)
        config.dataflow.otp = os.getenv('DATAFLOW_OTP', config.dataflow.otp)
        config.dataflow.auto_enter_otp = self._get_env_bool('DATAFLOW_AUTO_ENTER_OTP', config.dataflow.auto_enter_otp)
        config.dataflow.cookies_file = os.getenv('DATAFLOW_COOKIES_FILE', config.dataflow.cookies_file)
        config.dataflow.session_max_age_hours = self._get_env_float('DATAFLOW_SESSION_MAX_AGE_HOURS', config.dataflow.session_max_age_hours)

        # Verification request choices
        config.verification.country = os.getenv('VR_COUNTRY', config.verification.country)
        config.verification.authority = os.getenv('VR_AUTHORITY', config.verification.authority)
        config.verification.verification_reason = os.getenv('VR_REASON', config.verification.verification_reason)
        config.verification.verification_type = os.getenv('VR_TYPE', config.verification.verification_type)
        config.verification.payment_enabled = self._get_env_bool('VR_PAYMENT_ENABLED', config.verification.payment_enabled)

        # Documents
        config.documents.document_path = os.getenv('DOCUMENT_PATH', config.documents.document_path)
        config.documents.passport_path = os.getenv('PASSPORT_PATH', config.documents.passport_path)

        return config

    def _validate_configuration(self, config: DataFlowAutomationConfig) -> None:
        """
        Validate configuration and raise errors for critical invalid values
        """
        errors = []

        if not config.dataflow.base_url:
            errors.append("DATAFLOW_BASE_URL is required")
        elif not config.dataflow.base_url.startswith(('http://', 'https://')):
            errors.append("DATAFLOW_BASE_URL must start with http:// or https://")

        if config.dataflow.email and '@' not in config.dataflow.email:
            errors.append("DATAFLOW_EMAIL must be a valid email address")

        if config.dataflow.otp and not config.dataflow.otp.isdigit():
            errors.append("DATAFLOW_OTP must contain digits only")

        if config.dataflow.session_max_age_hours <= 0:
            errors.append("DATAFLOW_SESSION_MAX_AGE_HOURS must be positive")

        # Validate automation mode settings
        if config.automation_mode.timeout < 1000:
            errors.append("AUTOMATION_TIMEOUT must be at least 1000ms")

        # Validate log level
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.automation.log_level not in valid_log_levels:
            errors.append(f"AUTOMATION_LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            error_message = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            self.logger.error(error_message)
            raise ValueError(error_message)

        self.logger.info("Configuration validation passed")

    def _apply_default_values(self, config: DataFlowAutomationConfig) -> DataFlowAutomationConfig:
        """
        Apply default values where configuration is missing
        """
        if config.automation_mode.timeout == 0:
            config.automation_mode.timeout = 30000

        if not config.verification.country_code and config.verification.country.lower() == 'bahrain':
            config.verification.country_code = 'BHR'

        # Pausing for an operator only works in a headed browser
        if config.automation_mode.headless and config.automation_mode.manual_pause_enabled:
            self.logger.warning("Headless mode disables manual pauses; failures will raise instead")
            config.automation_mode.manual_pause_enabled = False

        self.logger.info("Default values applied to configuration")
        return config

    def _get_default_configuration(self) -> DataFlowAutomationConfig:
        """Get a complete default configuration as fallback"""
        return DataFlowAutomationConfig()

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable"""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment variable"""
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            self.logger.warning(f"Invalid integer value for {key}, using default: {default}")
            return default

    def _get_env_float(self, key: str, default: float) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            self.logger.warning(f"Invalid number for {key}, using default: {default}")
            return default

    def save_configuration(self, config: DataFlowAutomationConfig, config_file: Optional[str] = None) -> bool:
        """Save configuration to JSON file"""
        try:
            output_file = Path(config_file) if config_file else self.main_config_file

            output_file.parent.mkdir(parents=True, exist_ok=True)

            with open(output_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(config), f, indent=2, ensure_ascii=False)

            self.logger.info(f"Configuration saved to {output_file}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to save configuration: {e}")
            return False

    def get_automation_mode_config(self) -> AutomationModeConfig:
        """Get automation mode configuration (headless, manual pauses, etc.)"""
        if not self._config:
            self.load_configuration()
        return self._config.automation_mode

    def get_dataflow_config(self) -> DataFlowConfig:
        """Get target application configuration"""
        if not self._config:
            self.load_configuration()
        return self._config.dataflow

    def get_verification_config(self) -> VerificationRequestConfig:
        if not self._config:
            self.load_configuration()
        return self._config.verification

    def get_automation_config(self) -> AutomationConfig:
        """Get general automation configuration"""
        if not self._config:
            self.load_configuration()
        return self._config.automation

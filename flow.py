#!/usr/bin/env python3
"""
DataFlow Verification Automation

Orchestrates the two scenarios against the DataFlow staging application:

* verification request: login (reusing a saved cookie session when it belongs
  to the configured email), then every page handler of the verification
  request flow in order, then the run summary.
* onboarding: signup of a random applicant through the about-yourself page.

Progress is shown as a console progress bar, each step is timed by the
performance monitor, and a failed step is screenshotted and dumped to the
log before the run stops.
"""

import logging
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from playwright.async_api import BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from base_exceptions import LoginFailedError
from config_manager import ConfigurationManager, DataFlowAutomationConfig
from extraction import PageStateExtractor, VerificationSummary, extract_summary, print_summary, save_summary
from filling import FormFiller
from onboarding import OnboardingScenario, request_otp
from pages import VERIFICATION_STEPS, VerificationRequestPages
from performance_monitor import PerformanceMonitor
from session_store import SessionStore

logger = logging.getLogger(__name__)

LOGGED_IN_MARKERS = ':text("Start New Verification"), :text("Verifications"), .sidebar, [class*="sidebar"]'
DASHBOARD_REDIRECT_TIMEOUT = 15000

@dataclass
class AutomationState:
    """Current state of the automation process"""
    current_step_index: int = 0
    total_steps: int = 0
    steps_completed: List[str] = field(default_factory=list)
    steps_failed: List[str] = field(default_factory=list)
    logged_in: bool = False
    login_method: Optional[str] = None  # "cookies" or "fresh"
    automation_start_time: float = field(default_factory=time.time)
    last_error: Optional[str] = None

class ProgressTracker:
    """Tracks and displays automation progress with visual progress bar"""

    def __init__(self):
        self.current_step = 0
        self.total_steps = 0
        self.step_names: List[str] = []
        self.start_time: Optional[float] = None
        self.completed_steps: List[int] = []
        self.failed_steps: List[int] = []
        self.current_step_status = "initialized"
        self.logger = logging.getLogger(f"{__name__}.ProgressTracker")

    def initialize(self, steps: List[str]):
        """Initialize progress tracker with list of steps"""
        self.step_names = steps.copy()
        self.total_steps = len(steps)
        self.current_step = 0
        self.start_time = time.time()
        self.completed_steps = []
        self.failed_steps = []
        self.current_step_status = "initialized"

        self.logger.info(f"Progress tracker initialized with {self.total_steps} steps: {', '.join(steps)}")
        self.display_progress()

    def update_progress(self, step_index: int, step_name: str = None):
        """Move the tracker to step_index and mark it as processing"""
        if step_index < 0 or step_index >= self.total_steps:
            self.logger.warning(f"Invalid step index: {step_index}. Must be between 0 and {self.total_steps - 1}")
            return

        self.current_step = step_index
        if step_name:
            self.step_names[step_index] = step_name
        self.current_step_status = "processing"
        self.display_progress()

    def mark_step_completed(self, step_index: int):
        if step_index not in self.completed_steps:
            self.completed_steps.append(step_index)

        self.current_step_status = "completed"
        self.logger.info(f"Step {step_index + 1} completed: {self.get_current_step_name()}")
        self.display_progress()

    def mark_step_failed(self, step_index: int, error_msg: str = None):
        if step_index not in self.failed_steps:
            self.failed_steps.append(step_index)

        self.current_step_status = "failed"
        error_info = f" - {error_msg}" if error_msg else ""
        self.logger.error(f"Step {step_index + 1} failed: {self.get_current_step_name()}{error_info}")
        self.display_progress()

    def render_bar(self, bar_length: int = 40) -> str:
        """Progress bar: completed █, current ▶ (or ✗ when failed), remaining ░"""
        if self.total_steps == 0:
            return "░" * bar_length

        filled_length = int(bar_length * len(self.completed_steps) / self.total_steps)
        current_pos = int(bar_length * self.current_step / self.total_steps)

        bar = ""
        for i in range(bar_length):
            if i < filled_length:
                bar += "█"
            elif i == current_pos and self.current_step_status == "processing":
                bar += "▶"
            elif i == current_pos and self.current_step_status == "failed":
                bar += "✗"
            else:
                bar += "░"
        return bar

    def display_progress(self):
        if self.total_steps == 0:
            print("No steps to process")
            return

        percentage = self.get_progress_percentage()
        status_indicator = {
            "initialized": "🔄",
            "processing": "⚡",
            "completed": "✅",
            "failed": "❌"
        }.get(self.current_step_status, "🔄")

        progress_lines = [
            f"\n{'='*60}",
            f"DATAFLOW AUTOMATION PROGRESS {status_indicator}",
            f"{'='*60}",
            f"Progress: [{self.render_bar()}] {percentage:.1f}%",
            f"Current:  Step {self.current_step + 1}/{self.total_steps} - {self.get_current_step_name()}",
            f"Status:   {self.current_step_status.title()}",
            f"Completed: {len(self.completed_steps)}/{self.total_steps} steps",
            f"Time:     {self._get_time_info()}",
            f"{'='*60}\n"
        ]
        print("\n".join(progress_lines))

        self.logger.info(f"Progress: {percentage:.1f}% - Step {self.current_step + 1}/{self.total_steps}: "
                         f"{self.get_current_step_name()} ({self.current_step_status})")

    def get_progress_percentage(self) -> float:
        if self.total_steps == 0:
            return 0.0
        return (len(self.completed_steps) / self.total_steps) * 100

    def get_current_step_name(self) -> str:
        if self.current_step < len(self.step_names):
            return self.step_names[self.current_step]
        return f"Step {self.current_step + 1}"

    def get_remaining_steps_count(self) -> int:
        return self.total_steps - len(self.completed_steps)

    def _get_time_info(self) -> str:
        if not self.start_time:
            return "Not started"

        elapsed_str = self._format_duration(time.time() - self.start_time)
        estimated_remaining = self._estimate_remaining_time()
        if estimated_remaining:
            return f"Elapsed: {elapsed_str}, Est. remaining: {self._format_duration(estimated_remaining)}"
        return f"Elapsed: {elapsed_str}"

    def _estimate_remaining_time(self) -> Optional[float]:
        """Average time per completed step times the steps left"""
        if not self.start_time or len(self.completed_steps) == 0:
            return None

        elapsed = time.time() - self.start_time
        return elapsed / len(self.completed_steps) * self.get_remaining_steps_count()

    @staticmethod
    def _format_duration(seconds: float) -> str:
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            return f"{int(seconds // 60)}m {int(seconds % 60)}s"
        else:
            return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"


def _slug(text: str) -> str:
    return re.sub(r'[^a-z0-9]+', '_', text.lower()).strip('_')


class DataFlowAutomator:
    """
    Runs DataFlow scenarios in a single Chromium page, one step at a time.
    """

    def __init__(self, config_manager: ConfigurationManager = None, config: DataFlowAutomationConfig = None):
        self.config_manager = config_manager or ConfigurationManager()
        self.config = config or self.config_manager.load_configuration()

        self.progress_tracker = ProgressTracker()
        self.automation_state = AutomationState()
        self.extractor = PageStateExtractor()
        self.session_store = SessionStore(self.config.dataflow.cookies_file,
                                          self.config.dataflow.session_max_age_hours)
        self.performance_monitor = PerformanceMonitor(
            enable_monitoring=self.config.automation.enable_performance_monitoring
        )
        self.summary_path: Optional[str] = None
        self.logger = logging.getLogger(f"{__name__}.DataFlowAutomator")

        self._apply_configuration()
        self.logger.info("DataFlowAutomator initialized with configuration management and performance monitoring")

    def _apply_configuration(self):
        """Apply configuration settings to the automator"""
        mode_config = self.config.automation_mode
        self.headless = mode_config.headless
        self.slow_motion = mode_config.slow_motion
        self.timeout = mode_config.timeout
        self.screenshot_on_failure = mode_config.screenshot_on_failure
        # The Inspector cannot be shown without a window
        self.manual_pause_enabled = mode_config.manual_pause_enabled and not mode_config.headless

        automation_config = self.config.automation
        self.element_wait_timeout = automation_config.element_wait_timeout
        self.screenshot_dir = automation_config.screenshot_dir

        self.logger.info(f"Configuration applied - Headless: {self.headless}, "
                         f"Manual pause: {self.manual_pause_enabled}, Base URL: {self.config.dataflow.base_url}")

    @asynccontextmanager
    async def browser_page(self):
        """Yield (context, page) of a fresh Chromium browser, closed on exit"""
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=self.headless, slow_mo=self.slow_motion)
            try:
                context = await browser.new_context()
                context.set_default_timeout(self.timeout)
                page = await context.new_page()
                yield context, page
            finally:
                await browser.close()
                self.logger.info("Browser closed")

    def create_filler(self, page: Page) -> FormFiller:
        return FormFiller(
            page,
            manual_pause_enabled=self.manual_pause_enabled,
            screenshot_dir=self.screenshot_dir,
            screenshots_enabled=self.config.automation.take_step_screenshots,
            element_wait_timeout=self.element_wait_timeout,
        )

    async def _session_is_active(self, filler: FormFiller) -> bool:
        """Open the dashboard and check the user is still signed in"""
        page = filler.page
        print('🍪 Checking saved session...')
        await page.goto(self.config.dataflow.dashboard_url)
        await filler.wait_for_network_idle()

        try:
            await page.locator(LOGGED_IN_MARKERS).first.wait_for(state='visible', timeout=self.element_wait_timeout)
            return True
        except PlaywrightTimeoutError:
            return '/dashboard' in page.url

    async def fresh_login(self, filler: FormFiller, context: BrowserContext):
        """Email, captcha, OTP, then save the cookies of the new session"""
        dataflow = self.config.dataflow
        page = filler.page

        await request_otp(filler, dataflow.signin_url, dataflow.email)
        if dataflow.auto_enter_otp:
            await filler.enter_otp(dataflow.otp)
        else:
            await filler.request_manual_intervention('Please enter the OTP, then press [Resume] in Playwright Inspector...',
                                                     step='otp')

        print('⏳ Waiting for redirect to dashboard...')
        try:
            await page.wait_for_function(
                "() => window.location.href.includes('/dashboard') || window.location.href.includes('/home')",
                timeout=DASHBOARD_REDIRECT_TIMEOUT,
            )
        except PlaywrightTimeoutError:
            await filler.screenshot('login-failed', force=self.screenshot_on_failure)
            raise LoginFailedError(f"No dashboard after OTP, still on {page.url}")

        print('✅ Login successful')
        await self.session_store.save(context, dataflow.email)

    async def login(self, filler: FormFiller, context: BrowserContext) -> str:
        """
        Sign in with the saved session when possible, otherwise with a fresh login.

        Returns:
            "cookies" or "fresh", whichever worked.
        """
        email = self.config.dataflow.email
        if not email:
            raise LoginFailedError("DATAFLOW_EMAIL is not configured")

        saved_email = await self.session_store.load(context)
        if saved_email and saved_email == email:
            if await self._session_is_active(filler):
                print(f"✅ Logged in with saved session for {email}")
                method = "cookies"
            else:
                print('⚠️ Saved session is no longer valid, logging in again')
                await self.fresh_login(filler, context)
                method = "fresh"
        else:
            if saved_email:
                print(f"🍪 Saved session belongs to {saved_email}, logging in as {email}")
            await self.fresh_login(filler, context)
            method = "fresh"

        self.automation_state.logged_in = True
        self.automation_state.login_method = method
        return method

    async def _capture_failure(self, filler: FormFiller, step_name: str):
        if self.screenshot_on_failure:
            path = await filler.screenshot(f"failure-{_slug(step_name)}", force=True)
            if path:
                print(f"📸 Failure screenshot: {path}")
        await self.extractor.log_debug_state(filler.page)

    async def run_step(self, step_index: int, step_name: str, action: Callable[[], Awaitable[object]],
                       filler: FormFiller, summary: VerificationSummary) -> bool:
        """
        Run one step with progress tracking and performance measurement.
        A failed step is screenshotted, dumped to the log and recorded on the
        summary; the exception does not propagate.
        """
        self.automation_state.current_step_index = step_index
        self.progress_tracker.update_progress(step_index, step_name)
        self.performance_monitor.start_step_monitoring(step_name, step_index)
        interventions_before = filler.manual_interventions

        try:
            async with self.performance_monitor.measure_async_operation(f"step_{_slug(step_name)}"):
                await action()
        except Exception as e:
            self.logger.error(f"Step '{step_name}' failed: {e}")
            self.progress_tracker.mark_step_failed(step_index, str(e))
            self.performance_monitor.end_step_monitoring(False, filler.manual_interventions - interventions_before)
            self.automation_state.steps_failed.append(step_name)
            self.automation_state.last_error = str(e)
            summary.failed_steps.append(step_name)
            summary.error = f"{step_name}: {e}"
            await self._capture_failure(filler, step_name)
            return False

        self.progress_tracker.mark_step_completed(step_index)
        self.performance_monitor.end_step_monitoring(True, filler.manual_interventions - interventions_before)
        self.automation_state.steps_completed.append(step_name)
        summary.completed_steps.append(step_name)
        await filler.screenshot(f"step-{step_index + 1:02d}-{_slug(step_name)}")
        return True

    async def _wait_for_dashboard(self, filler: FormFiller):
        if filler.manual_pause_enabled:
            await filler.request_manual_intervention('Please wait for all loaders on the homepage to finish, then press [Resume]...',
                                                     step='dashboard')
        else:
            await filler.wait_for_network_idle()

    async def process_verification_steps(self, context: BrowserContext, filler: FormFiller,
                                         summary: VerificationSummary) -> bool:
        """Login, then every verification request page handler in order; stops at the first failure"""
        if not await self.run_step(0, 'Login', lambda: self.login(filler, context), filler, summary):
            return False

        await self._wait_for_dashboard(filler)

        pages = VerificationRequestPages(filler, self.config)
        try:
            for offset, (step_name, handler_name) in enumerate(VERIFICATION_STEPS, start=1):
                if not await self.run_step(offset, step_name, getattr(pages, handler_name), filler, summary):
                    return False
        finally:
            summary.payment_amount = pages.payment_amount
        return True

    def _finish_run(self, run_id: str, summary: VerificationSummary):
        """Save and print the summary, then the performance report"""
        self.performance_monitor.stop_run_monitoring()
        try:
            self.summary_path = save_summary(summary, self.config.automation.summary_file)
        except OSError as e:
            self.logger.error(f"Could not save summary: {e}")
        print_summary(summary)

        if self.config.automation.save_performance_report and self.performance_monitor.enable_monitoring:
            report = self.performance_monitor.generate_performance_report(run_id)
            self.performance_monitor.save_performance_report(report)

    async def run_verification_request(self) -> bool:
        """
        Log in and create a verification request.

        Returns:
            True when every step completed.
        """
        run_id = f"verification_request_{int(time.time())}"
        self.logger.info("Starting DataFlow verification request automation")
        self.performance_monitor.start_run_monitoring(run_id)
        self.automation_state = AutomationState()

        step_names = ['Login'] + [name for name, _ in VERIFICATION_STEPS]
        self.automation_state.total_steps = len(step_names)
        self.progress_tracker.initialize(step_names)

        summary = VerificationSummary(scenario='verification_request', email=self.config.dataflow.email)
        success = False
        try:
            async with self.performance_monitor.measure_async_operation("run_verification_request"), \
                    self.browser_page() as (context, page):
                filler = self.create_filler(page)
                try:
                    success = await self.process_verification_steps(context, filler, summary)
                finally:
                    summary.manual_interventions = filler.manual_interventions
                    await extract_summary(page, self.config.verification, summary)
        except Exception as e:
            self.logger.error(f"Automation failed: {e}")
            self.automation_state.last_error = str(e)
            summary.error = summary.error or str(e)
            success = False
        finally:
            summary.success = success
            self._finish_run(run_id, summary)

        if success:
            self.logger.info("Verification request automation completed successfully")
        return success

    async def run_onboarding(self) -> bool:
        """
        Sign up a random applicant and fill the about-yourself page.

        Returns:
            True when the form was submitted and the page moved on.
        """
        run_id = f"onboarding_{int(time.time())}"
        self.logger.info("Starting DataFlow onboarding automation")
        self.performance_monitor.start_run_monitoring(run_id)
        self.automation_state = AutomationState(total_steps=1)
        self.progress_tracker.initialize(['Onboarding'])

        summary = VerificationSummary(scenario='onboarding')
        success = False
        try:
            async with self.performance_monitor.measure_async_operation("run_onboarding"), \
                    self.browser_page() as (context, page):
                filler = self.create_filler(page)
                scenario = OnboardingScenario(filler, self.config)
                summary.email = scenario.email
                summary.phone = scenario.phone
                try:
                    completed = await self.run_step(0, 'Onboarding', lambda: scenario.run(summary), filler, summary)
                    success = completed and not summary.failed_steps
                finally:
                    summary.phone = scenario.phone
                    summary.manual_interventions = filler.manual_interventions
                    await extract_summary(page, None, summary)
        except Exception as e:
            self.logger.error(f"Automation failed: {e}")
            self.automation_state.last_error = str(e)
            summary.error = summary.error or str(e)
            success = False
        finally:
            summary.success = success
            self._finish_run(run_id, summary)

        return success

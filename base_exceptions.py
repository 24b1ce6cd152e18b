import sys
from datetime import datetime


class AutomationError(Exception):
    """Base class for errors raised while driving the DataFlow application"""


class ManualInterventionRequired(AutomationError):
    """Raised when a step needs the operator but manual pauses are disabled"""
    def __init__(self, message: str, step: str = None):
        self.message = message
        self.step = step
        super().__init__(self.message)


class SelectorChainExhausted(AutomationError):
    """Raised when every selector strategy for an element has failed"""
    def __init__(self, description: str, tried=None):
        self.description = description
        self.tried = list(tried or [])
        super().__init__(f"No working selector for {description} (tried {len(self.tried)})")


class DropdownSelectionError(AutomationError):
    """Raised when a dropdown still shows its placeholder after selection"""


class LoginFailedError(AutomationError):
    """Raised when login or OTP verification does not reach the expected page"""


class PageTransitionError(AutomationError):
    """Raised when a page step cannot find the control that moves the flow forward"""


class AutomationCompleteException(Exception):
    """Raised when automation should end because the flow reached its last page"""
    def __init__(self, message="Automation complete", success=True, summary_path=None):
        self.message = message
        self.success = success
        self.summary_path = summary_path
        super().__init__(self.message)

    def display_completion_message(self):
        """Display a formatted completion message"""
        print("\n" + "="*80)
        print("🎉 DataFlow Verification Automation Complete! 🎉")
        print(f"✨ Status: {'Success' if self.success else 'Failed'}")
        print(f"✨ Message: {self.message}")
        if self.summary_path:
            print(f"✨ Summary saved to: {self.summary_path}")
        current_time = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        print(f"✨ Completed at: {current_time}")
        print("="*80 + "\n")
        if self.success:
            sys.exit(0)
        else:
            sys.exit(1)

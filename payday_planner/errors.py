class PaydayError(Exception):
    """Base class for payday planning errors. ``code`` is stable for API clients."""

    code = "payday_error"

    def __init__(self, message=None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class NoIncomeConfigured(PaydayError):
    """No primary income with a paycheck amount and next payday is configured."""

    code = "no_income_configured"


class InvalidBudgetConfiguration(PaydayError):
    """Budget percentages or amounts are out of range."""

    code = "invalid_budget_configuration"


class PaydayCompletionError(PaydayError):
    """Payday could not be completed. Nothing was saved, retry is safe."""

    code = "payday_completion_failed"

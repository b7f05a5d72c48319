"""
This file contains custom, application-specific exceptions.
"""

class FeatureDisabledError(Exception):
    """Raised when a teacher feature is enabled while the center has it disabled."""
    def __init__(self, feature_name: str):
        self.feature_name = feature_name
        super().__init__(f"Feature '{feature_name}' is not enabled for this center.")

class InvoicePeriodAlreadyGeneratedError(Exception):
    """Raised when invoices were already generated for a center and billing period."""
    def __init__(self, center_id, month: int, year: int):
        self.center_id = center_id
        self.month = month
        self.year = year
        super().__init__(
            f"Invoices for center {center_id} were already generated for {year}-{month:02d}."
        )

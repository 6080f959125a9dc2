"""Application controllers for the selection process engine."""

from equiduty.application.services.selection_process_detail import (
    SelectionProcessDetailController,
)
from equiduty.application.services.selection_process_list import (
    SelectionProcessListController,
)
from equiduty.application.services.selection_process_wizard import (
    CreateSelectionProcessWizard,
    WizardStep,
)

__all__: list[str] = [
    "CreateSelectionProcessWizard",
    "SelectionProcessDetailController",
    "SelectionProcessListController",
    "WizardStep",
]

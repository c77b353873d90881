"""
Inspection module - client side of the container inspection wizard.
"""
from inspection.client import InspectionAPIError, InspectionClient
from inspection.steps import Step, StepNavigator
from inspection.wizard import InspectionWizard

__all__ = ["InspectionAPIError", "InspectionClient", "InspectionWizard", "Step", "StepNavigator"]

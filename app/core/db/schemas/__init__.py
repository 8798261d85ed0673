# Import models so Base metadata is aware of them
from .wizard import WizardSnapshot  # noqa: F401

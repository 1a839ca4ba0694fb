from passdesk.models.department import Department
from passdesk.models.event import Event
from passdesk.models.receipt import Receipt
from passdesk.models.passes import Pass
from passdesk.models.slot import Slot
from passdesk.models.admin import Admin

__all__ = ["Department", "Event", "Receipt", "Pass", "Slot", "Admin"]

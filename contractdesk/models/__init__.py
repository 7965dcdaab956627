from .user import User
from .counter import Counter
from .quotation import Quotation
from .project import Project
from .invoice import Invoice
from .audit import AuditLogEntry

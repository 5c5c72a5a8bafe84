"""userbase — identity-record service.

Stores user accounts, checks passwords, issues bearer tokens and
guards every user-record route that is not login or self-registration.
"""

__version__ = "0.1.0"

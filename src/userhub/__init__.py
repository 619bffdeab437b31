"""userhub: user account management backend.

Registration, password login with JWT issuance, profile mutation,
soft activation/deactivation, and permission-gated routes.
"""

__version__ = "0.1.0"

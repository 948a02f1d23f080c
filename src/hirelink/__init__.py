"""
HireLink: a multi-role hiring marketplace.

The core is a set of interlocking approval and lifecycle state machines:
business verification, recruiter-to-business linking, job approval and the
multi-round application pipeline.
"""

__version__ = "0.1.0"

from hirelink.service import Marketplace

__all__ = ["Marketplace", "__version__"]

"""
Admissions Portal - applicant registration, application lifecycle and review workflow.
"""

__version__ = "1.0.0"

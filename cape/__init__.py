"""
CAPE - Cross-Account Privilege Escalation graph engine.

Merges per-account IAM identities and PMapper escalation edges into one
directed graph and reports which principals can reach an admin.
"""

__version__ = '1.0.0'

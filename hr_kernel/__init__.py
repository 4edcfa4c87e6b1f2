"""
HR Kernel - employee records core

A transactional employee-records kernel with:
- A single salary-change path (validate, apply, history, audit)
- Append-only salary history and audit trail
- Configurable salary policy band
- Soft-delete employee lifecycle with acyclic management chains
"""

__version__ = "0.1.0"

"""
Compliance Kernel

Direct/dispatch hire ratio compliance with:
- A pure state transition function per hire
- Per-contractor state carried forward between runs
- Append-only runs, ledger entries and summaries
- Locked per-(mode, cutover date) run sequence numbers
"""

__version__ = "0.1.0"

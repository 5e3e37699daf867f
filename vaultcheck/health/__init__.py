"""Health subsystem — report model and probe contract.

The aggregator lives in ``vaultcheck.health.healthchecks``.
"""

from vaultcheck.health.probe import Probe, ProbeOutcome, attempt
from vaultcheck.health.report import Report

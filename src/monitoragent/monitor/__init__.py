"""Health probing, IP reporting and Wake-on-LAN."""

from monitoragent.monitor.health import UNREACHABLE_STATUS, HealthChecker, probe
from monitoragent.monitor.ip_report import IpReporter
from monitoragent.monitor.wol import build_magic_packet, send_magic_packet

__all__ = [
    "UNREACHABLE_STATUS",
    "HealthChecker",
    "IpReporter",
    "build_magic_packet",
    "probe",
    "send_magic_packet",
]

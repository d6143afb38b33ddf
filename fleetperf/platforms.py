"""Platform classification for sysstat support."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class PlatformFamily(Enum):
    """Host platform families with distinct sysstat handling."""

    DEBIAN = "debian"
    RPM = "rpm"
    SUSE = "suse"
    UNKNOWN = "unknown"


# Leading token of the platform string (e.g. "centos" in "centos-7-x86_64")
FAMILY_TOKENS: Dict[str, PlatformFamily] = {
    "debian": PlatformFamily.DEBIAN,
    "ubuntu": PlatformFamily.DEBIAN,
    "cumulus": PlatformFamily.DEBIAN,
    "redhat": PlatformFamily.RPM,
    "centos": PlatformFamily.RPM,
    "oracle": PlatformFamily.RPM,
    "scientific": PlatformFamily.RPM,
    "fedora": PlatformFamily.RPM,
    "el": PlatformFamily.RPM,
    "eos": PlatformFamily.RPM,
    "sles": PlatformFamily.SUSE,
}


@dataclass(frozen=True)
class PlatformCapabilities:
    """What the activator and collector may do on a platform."""

    family: PlatformFamily
    sampler_supported: bool
    needs_debian_activation: bool
    needs_symlink_activation: bool
    autostart_supported: bool


@dataclass(frozen=True)
class PollingRule:
    """sed substitution that switches the sysstat cron job to every minute."""

    cron_file: str
    pattern: str
    replacement: str = "*"

    def command(self) -> str:
        return f"sed -i 's#{self.pattern}#{self.replacement}#' {self.cron_file}"


# Aggressive polling rewrites, one per family that ships a sysstat cron job
POLLING_RULES: Dict[PlatformFamily, PollingRule] = {
    PlatformFamily.DEBIAN: PollingRule("/etc/cron.d/sysstat", "5-55/10"),
    PlatformFamily.RPM: PollingRule("/etc/cron.d/sysstat", r"\*/10"),
    PlatformFamily.SUSE: PollingRule("/etc/sysstat/sysstat.cron", r"\*/10"),
}


def platform_family(platform: str) -> PlatformFamily:
    """
    Map a platform string to its family.

    Args:
        platform: Platform identifier such as "ubuntu-22.04-amd64"

    Returns:
        PlatformFamily: Matching family, UNKNOWN when unrecognised
    """
    token = (platform or "").strip().lower().split("-", 1)[0]
    return FAMILY_TOKENS.get(token, PlatformFamily.UNKNOWN)


def classify(platform: str) -> PlatformCapabilities:
    """
    Answer which sysstat steps apply to a platform.

    Args:
        platform: Platform identifier

    Returns:
        PlatformCapabilities: Independent capability flags; all False for
            unknown platforms
    """
    family = platform_family(platform)
    supported = family is not PlatformFamily.UNKNOWN

    return PlatformCapabilities(
        family=family,
        sampler_supported=supported,
        needs_debian_activation=family is PlatformFamily.DEBIAN,
        needs_symlink_activation=family is PlatformFamily.SUSE,
        # SLES does not run sysstat as a service
        autostart_supported=supported and family is not PlatformFamily.SUSE,
    )

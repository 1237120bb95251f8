"""Amazon Linux Security Advisories (ALAS) updater."""

from vulnsync.updaters.aws.release import Release
from vulnsync.updaters.aws.updater import AWSUpdater

__all__ = ["AWSUpdater", "Release"]

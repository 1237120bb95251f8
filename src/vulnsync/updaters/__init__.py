"""Feed updaters and the registry that names them."""

from vulnsync.updaters.aws import AWSUpdater
from vulnsync.updaters.registry import register_updater

register_updater("aws", AWSUpdater)

"""MatriMatch matching core: compatibility scoring and match materialization."""

__version__ = "0.1.0"

"""nrplugin-agent - forwards aggregated metrics to the New Relic plugin API."""
__version__ = "1.0.0"

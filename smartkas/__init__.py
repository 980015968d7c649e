"""SmartKas Insights - anomaly alerts and semantic memory for small-business finance"""

__version__ = "0.3.0"

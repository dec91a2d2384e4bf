"""toolgate - capability-gated tool execution sandbox"""

__version__ = "0.1.0"

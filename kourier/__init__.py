"""Gateway configuration, external authorization settings and Envoy resource builders."""

__version__ = "0.1.0"
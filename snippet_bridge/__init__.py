"""snippet-bridge: component markup snippets -> target-schema property assignments."""

__version__ = "0.1.0"

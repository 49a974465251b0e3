"""realmlink - Xbox Live device-code login and Bedrock Realms access."""

__version__ = "0.1.0"

"""saws: short-lived AWS credentials through IAM Identity Center."""

__version__ = "0.1.0"

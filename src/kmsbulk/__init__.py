"""KMS Bulk Encryptor - encrypt directory trees with Cloud KMS and upload them."""

__version__ = "0.1.0"

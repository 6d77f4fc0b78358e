"""S3-compatible storage access: client cache, operations, error mapping."""

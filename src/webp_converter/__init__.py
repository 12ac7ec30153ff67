"""Convert images in S3-compatible buckets to WebP, tracking conversions in a SQL ledger."""

"""IAM collaborators: ARN helpers, vendors, trust policies, PMapper, boto3 listing."""

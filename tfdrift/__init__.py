"""
tfdrift — extract IAM grants from Terraform state for drift detection.
"""
__version__ = "0.3.0"

"""stackship - deploy packaged serverless projects to CloudFormation stacks."""

__version__ = "0.1.0"

"""
Compile and deploy the escrow milestones contract
"""

__version__ = "0.1.0"

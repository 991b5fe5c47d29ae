"""
Regional Franchise Platform

Territory governance, job-to-consultant allocation and licensee revenue settlement.
"""

__version__ = "0.1.0"

"""
Regional Franchise Platform - Background Tasks
"""

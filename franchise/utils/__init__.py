"""
Regional Franchise Platform - Utilities Package
"""

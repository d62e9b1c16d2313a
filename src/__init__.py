"""
CRM Audience Rules
"""

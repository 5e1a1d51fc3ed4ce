"""API v1: request schemas and endpoints"""

"""
Services - MongoDB collection services and placement workflows.
"""

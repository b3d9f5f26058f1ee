"""
Test suite for docx_templater.
"""

"""
Identity collaborators: explorer entity labels and social-handle resolution.
"""

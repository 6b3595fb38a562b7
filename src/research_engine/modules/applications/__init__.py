"""
Applications Module

Student applications to published projects: admission control, resume
storage, and professor-side review (list, status update, delete, resume
download).
"""

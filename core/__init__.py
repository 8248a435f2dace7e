"""
Shared plumbing: constants, errors, configuration, session context, transport and prompts.
"""

"""Foundation - Core building blocks for slogcloud.

Contains: error taxonomy, configuration, testing fakes.
"""

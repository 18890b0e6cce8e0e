"""
Engines: SQL dispatch and statement builders for administered servers.
"""

"""
Services that combine statement builders with the query dispatcher.
"""

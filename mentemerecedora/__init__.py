"""
Portal Mente Merecedora - backend API.

Personal development portal: diary, manifestation tools, guided
practices and the LUZ IA assistant.
"""

__version__ = "1.0.0"

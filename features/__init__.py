"""Feature packages of the certificate renewal tool.

``features.certs`` holds the renewal domain, its storage backends and the
console commands.
"""

"""Maven repository support.

- metadata.py: ``maven-metadata.xml`` version listings
- pom.py: POM parsing with parent chains and property filtering
"""

"""PaperMap - research paper mind maps.

Generates hierarchical mind maps from research papers with Claude on
Bedrock or Gemini, stores them in DynamoDB or Firestore, and supports
path-addressed edits of individual nodes.
"""

__version__ = "0.1.0"

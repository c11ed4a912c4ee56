"""
Exceptions raised by spacectl.

User exceptions describe a problem the operator can fix (missing Dockerfile, no session, unknown host);
system exceptions describe a failure of a collaborator (unreadable credential store, credential helper,
remote API or build daemon).
"""

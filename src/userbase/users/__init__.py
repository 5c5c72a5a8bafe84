"""User records — schema policy and repository.

Learn: policy.py decides which columns exist; repository.py turns
that decision into SQL. Routes never build SQL themselves.
"""

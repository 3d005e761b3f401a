"""Vlada billing backend.

Server side of the Vlada healthcare-billing application: Firebase Admin
bootstrapping from operator-supplied credentials, bill uploads to Cloud
Storage and bill metadata in Firestore.
"""

__version__ = "0.1.0"

"""Authentication and authorization.

Users log in with email/password and receive a JWT carrying their id.
Protected routes declare the permissions they accept; the guard in
dependencies.py resolves the bearer token to a User and checks it
against that declaration.
"""

"""
Vault auth service.

A passwordless authentication flow for the file vault. Users register or sign
in with an e-mail address and receive a one-time code by e-mail. When the
code is verified, a session is opened in the distributed session store and a
session cookie is set on the response.

Every account has one of two roles, student or standard. The role is chosen
once, at sign-up, and is what decides where the user lands after signing in.

Components
----------
:mod:`.registry`
    One account per e-mail address.
:mod:`.otp`
    Issues and verifies one-time codes.
:mod:`.sessions`
    Opens, resolves and revokes sessions.
:mod:`.flow`
    The state machine that ties them together.
:mod:`.services.directory`
    The account database, code storage, session store and mail delivery that
    the components above rely on.
"""

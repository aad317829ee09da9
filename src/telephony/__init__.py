"""Telephony applications built on the ARI channel proxy.

Asterisk hands channels to the Stasis app; the controller drives them through ARI.
"""

"""Invitation codes: minting, revocation, redemption and signup."""

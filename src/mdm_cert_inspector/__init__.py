"""
mdm_cert_inspector — Intune MDM device certificate inspector.

Locates a device's MDM identity certificate, parses its X.509 structure,
computes SHA-1/SHA-256/MD5 fingerprints and decodes the Microsoft Intune
private extensions (tenant, device, user, enrollment IDs) into one
immutable record.

Built on the Railway-Oriented Programming (ROP) helpers in `railway`:
every stage returns a Result, no stage raises.
"""

__version__ = "1.5.0"

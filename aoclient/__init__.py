"""Protocol, master server, lobby, evidence and demo playback logic for a courtroom role-playing game client."""

__version__ = "2.10.0"
"""Unreliable and ordered reliable messaging over UDP with a salted handshake."""
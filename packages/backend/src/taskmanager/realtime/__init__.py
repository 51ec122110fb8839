"""Real-time dashboard over a websocket.

The client authenticates once with the auth cookie when it connects,
then sends filter messages; each one is answered with the matching
tasks. See channel.py for the connection state machine.
"""

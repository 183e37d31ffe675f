"""
dropfour.client - Client side of an online room
"""

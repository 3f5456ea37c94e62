"""Request authentication dependencies"""

"""Seed data for the route catalog"""

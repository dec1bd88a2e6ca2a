"""Ranking, reports and charts"""

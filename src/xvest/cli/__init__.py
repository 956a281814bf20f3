"""
xvest Command Line Interface
"""

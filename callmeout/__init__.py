"""
Callmeout - Explain your latest change with a local analysis daemon.

A client runtime that:
1. Supervises the local callmeout analysis daemon (discovery, spawn, readiness)
2. Talks to it over a Unix socket using newline-delimited JSON
3. Collects the working-tree diff and asks the daemon for an impact report
4. Routes the report (or the failure) to whatever presents it

Usage:
    callmeout init          # Write a sample callmeout.yml
    callmeout explain       # Analyze the current diff once
    callmeout watch         # Re-analyze after saves piped on stdin
    callmeout ping          # Check whether the daemon answers
"""

__version__ = "0.1.0"
__author__ = "Callmeout"

"""Scraping for the Netgear CM family of cable modems.

Model specific bits (page paths, table ids, column order) live in models.py and are picked once per modem.
Everything else is shared: from the screenshots I find online, CM600/CM1000 serve the same DocsisStatus.asp
and EventLog.asp pages so other CM models may well work with the default layout.
"""

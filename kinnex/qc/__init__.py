"""Quality control reports produced alongside demultiplexing.
"""

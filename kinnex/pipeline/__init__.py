"""High level code for driving a Kinnex 16S deconcatenation and demultiplexing run.

This structures processing steps into the following modules:

  - run_info.py: Build the Run and its processing units from configuration.
    - config_utils.py: Load YAML configuration and look up stage parameters.
    - samplesheet.py: Validate the barcode to Bio Sample mapping files.

  - stages.py: Ordered, checkpointed execution of the pipeline stages.
    - inputs.py: Copy run data and sample sheets locally.
    - deconcat.py: skera deconcatenation of each unit.
    - demultiplex.py: lima demultiplexing of each unit plus barcode QC.
    - convert.py: bam2fastq conversion jobs, run in parallel.
    - merge.py: Collect QC and merge FASTQ files across units.
    - archive.py: Compressed delivery archive with md5 checksum.

  - main.py: Top level entry point.
"""

"""Infrastructure adapters for object storage and the metadata database"""

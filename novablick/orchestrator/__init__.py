"""
Agent orchestration engine: planning, step execution over typed tools and
streamed progress events.
"""

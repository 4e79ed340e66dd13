"""
Engine modules: registry, transition function, propagation, sweeper, resolver.
"""

import jax

# Grid-reproduction and derivative checks are made at 1e-4 and tighter.
jax.config.update("jax_enable_x64", True)

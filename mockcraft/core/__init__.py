"""Seeder core: schema model, validation, planning and orchestration."""

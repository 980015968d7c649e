"""Detection pipeline orchestration"""

"""外部格式读写: Gemfile.lock / Gemfile / gemset.nix"""

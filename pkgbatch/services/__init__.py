"""服务层: 归档缓存、拉取器、构建驱动、编排器"""

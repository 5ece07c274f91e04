"""领域模型：类目、商品、候选与映射结果。"""
